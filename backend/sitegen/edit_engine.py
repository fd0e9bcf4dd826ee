"""
Diff-based edit engine — applies a natural-language instruction to an
existing document as a list of SEARCH/REPLACE operations instead of
regenerating the whole page.

Entry point is edit_site(). It never re-runs generation stages, and a
failed edit always leaves the caller's document untouched (html=None).
"""

from dataclasses import dataclass, field
import re
import time

from sitegen.config import get_settings
from sitegen.errors import EditError, ErrorCode, PipelineError
from sitegen.llm_client import ModelClient, image_block
from sitegen.logo_replacer import SUCCESS_MESSAGE as LOGO_SUCCESS_MESSAGE
from sitegen.logo_replacer import is_logo_replacement, replace_logo
from sitegen.models import Attachment, EditOperation, EditResult
from sitegen.response_parser import parse_edit_response


NOT_FOUND_MESSAGE = (
    "I tried to make the change but couldn't find the exact elements. "
    "The site may have been modified. Could you try a different request?"
)
TRUNCATED_MESSAGE = "The response was too long and got cut off. Could you try a simpler change?"
NO_OPERATIONS_MESSAGE = "I couldn't determine what changes to make. Could you be more specific?"
NO_CHANGE_MESSAGE = "I couldn't make that change. Could you try rephrasing your request?"
DEFAULT_SUCCESS_MESSAGE = "Done! I've updated the design as requested."

_UPLOADED_IMAGE_TOKEN = "[[UPLOADED_IMAGE_{n}]]"


DIFF_EDITING_INSTRUCTION = """
You are an expert HTML/CSS code editor. Your job is to analyze HTML and return SPECIFIC search-and-replace operations.

# CRITICAL: OUTPUT FORMAT

You MUST return your changes as a series of SEARCH/REPLACE operations in this EXACT format:

<operations>
[SEARCH]
exact text to find in the HTML (include enough context to be unique)
[/SEARCH]
[REPLACE]
the new text that should replace it
[/REPLACE]
</operations>

# RULES FOR SEARCH/REPLACE

1. **SEARCH text MUST be unique** - Include enough surrounding context (classes, parent elements) to ensure only one match
2. **Preserve exact whitespace** - Copy whitespace exactly from the original HTML
3. **Multiple operations** - Use multiple SEARCH/REPLACE pairs for multiple changes
4. **Order matters** - Operations are applied one after another, each to the result of the previous one
5. **For deletions** - Use empty REPLACE block: [REPLACE][/REPLACE]
6. **Uploaded images** - Reference the Nth attached image as [[UPLOADED_IMAGE_N]] (1-based), never inline its data

# EXAMPLES

## Change text color to blue
<operations>
[SEARCH]
class="text-red-500"
[/SEARCH]
[REPLACE]
class="text-blue-500"
[/REPLACE]
</operations>

## Remove a heading
<operations>
[SEARCH]
<h2 class="text-2xl font-bold">Welcome to Our Site</h2>
[/SEARCH]
[REPLACE]
[/REPLACE]
</operations>

# EDIT TYPE GUIDANCE

## COLOR CHANGES
- Search for Tailwind color classes: bg-{color}-{shade}, text-{color}-{shade}, border-{color}-{shade}
- Also search for: from-{color}, to-{color}, via-{color} (gradients)
- For "darker": increase shade numbers; for "lighter": decrease them

## TEXT CHANGES
- Search for the exact text string, including surrounding tags for uniqueness

## ADDING CONTENT
- Search for the element AFTER which to insert
- Include the original + new content in the REPLACE

## REMOVING SECTIONS
- Search for the entire section element and use an empty REPLACE

## IMAGE CHANGES
- Find the <img> tag by context (location, alt text, class) and replace its src

# IMPORTANT

- Do NOT output full HTML
- Do NOT use markdown code blocks inside operations
- Each SEARCH must exist exactly as written in the HTML
"""


# ---------------------------------------------------------------
# Edit type detection (ordered: first match wins)
# ---------------------------------------------------------------

_EDIT_TYPE_RULES = [
    ("color_change", [
        r"(?:change|make|set|update).*(color|blue|red|green|yellow|purple|pink|orange|gray|grey|dark|light|primary|secondary|accent)",
        r"(?:color|background|bg).*(to|=)",
        r"(?:darker|lighter|brighter|muted)",
    ]),
    ("text_removal", [
        r"(?:remove|delete|take out|get rid of|hide|clear).*(text|title|heading|paragraph|description|subtitle|caption|label|headline)",
        r"(?:remove|delete|take out|get rid of|hide|clear)\s+(?:the\s+)?[\"']?.{1,50}[\"']?",
    ]),
    ("text_change", [
        r"(?:change|update|edit|modify|replace).*(text|title|heading|paragraph|description|subtitle|caption|content)",
        r"(?:rename|reword|rephrase)",
    ]),
    ("section_add", [
        r"(?:add|create|insert|include|put in).*(section|page|block|area|container|part|pricing|testimonial|contact|about|faq|feature|service|hero|footer|header|nav)",
    ]),
    ("section_removal", [
        r"(?:remove|delete|take out|get rid of|hide).*(section|page|block|area|container|part|entire|whole)",
    ]),
    ("layout_change", [
        r"(?:move|reorder|rearrange|swap|switch|center|align|left|right)",
        r"(?:bigger|smaller|wider|narrower|taller|shorter)",
        r"(?:padding|margin|spacing|gap)",
    ]),
]

_IMAGE_CHANGE_RE = re.compile(r"(?:change|replace|update|swap).*(image|photo|picture|background)", re.IGNORECASE)
_TYPOGRAPHY_RE = re.compile(r"(?:font|typography|typeface|text-size|font-size|bold|italic|weight)", re.IGNORECASE)
_ANIMATION_RE = re.compile(r"(?:animation|animate|effect|transition|hover|scroll)", re.IGNORECASE)


def detect_edit_type(instruction: str) -> str:
    for edit_type, patterns in _EDIT_TYPE_RULES:
        if any(re.search(p, instruction, re.IGNORECASE) for p in patterns):
            return edit_type
    if _IMAGE_CHANGE_RE.search(instruction) and not re.search(r"logo", instruction, re.IGNORECASE):
        return "image_change"
    if _TYPOGRAPHY_RE.search(instruction):
        return "typography_change"
    if _ANIMATION_RE.search(instruction):
        return "animation_change"
    return "general_edit"


# ---------------------------------------------------------------
# Operation application
# ---------------------------------------------------------------

@dataclass
class ApplyOutcome:
    html: str
    applied: int = 0
    total: int = 0
    failed_searches: list[str] = field(default_factory=list)


def whitespace_tolerant_pattern(search: str) -> re.Pattern | None:
    """
    Regex for `search` where each whitespace run matches one or more
    whitespace characters and everything else matches literally.
    """
    parts = search.split()
    if not parts:
        return None
    return re.compile(r"\s+".join(re.escape(p) for p in parts))


def apply_operation(html: str, op: EditOperation) -> tuple[str, bool]:
    """Apply one operation. Returns (document, applied)."""
    if not op.search:
        return html, False
    if op.search in html:
        return html.replace(op.search, op.replace), True

    pattern = whitespace_tolerant_pattern(op.search)
    if pattern is None:
        return html, False
    updated, count = pattern.subn(lambda _m: op.replace, html)
    if count:
        print("[edit] Applied operation with flexible whitespace matching")
        return updated, True
    return html, False


def apply_operations(html: str, operations: list[EditOperation]) -> ApplyOutcome:
    """Fold the operations over the document, in order."""
    outcome = ApplyOutcome(html=html, total=len(operations))
    for op in operations:
        updated, applied = apply_operation(outcome.html, op)
        if applied:
            outcome.html = updated
            outcome.applied += 1
        else:
            outcome.failed_searches.append(op.search[:50] + "...")
            print(f"[edit] Search string not found: {op.search[:100]!r}")
    return outcome


def replace_uploaded_images(html: str, attachments: list[Attachment]) -> str:
    for i, attachment in enumerate(attachments):
        html = html.replace(_UPLOADED_IMAGE_TOKEN.format(n=i + 1), attachment.data_uri)
    return html


def check_structure(html: str) -> bool:
    has_nav = bool(re.search(r"<nav", html, re.IGNORECASE))
    has_section = bool(re.search(r"<section", html, re.IGNORECASE))
    print(f"[edit] Result has nav: {has_nav}, has section: {has_section}")
    return has_nav and has_section


# ---------------------------------------------------------------
# edit_site
# ---------------------------------------------------------------

def build_edit_prompt(instruction: str, html: str, edit_type: str) -> str:
    return f"""{DIFF_EDITING_INSTRUCTION}

# USER REQUEST
"{instruction}"

# EDIT TYPE: {edit_type.upper()}

# CURRENT HTML (analyze this to find what to change)
{html}

# YOUR TASK
1. Analyze the HTML above
2. Identify the specific elements/classes that need to change
3. Return SEARCH/REPLACE operations to make the change

# REQUIRED OUTPUT FORMAT

First, provide a brief <thought> block with your analysis.
Then provide a <response> block with a friendly 1-2 sentence message for the user.
Finally, provide the <operations> block with your SEARCH/REPLACE pairs.

IMPORTANT:
- Your SEARCH strings must match EXACTLY what's in the HTML
- Include enough context to make each SEARCH unique
- Do NOT output full HTML - only the operations"""


async def edit_site(
    client: ModelClient,
    instruction: str,
    html: str,
    attachments: list[Attachment] | None = None,
) -> EditResult:
    """
    Apply `instruction` to `html`.

    Returns an EditResult whose html is None when nothing was changed.

    Raises:
        PipelineError: instruction or document missing
        EditError: the model could not be reached
    """
    if not instruction or not instruction.strip() or not html:
        raise PipelineError(
            "instruction and currentHTML are required",
            code=ErrorCode.INVALID_REQUEST,
        )
    attachments = attachments or []
    images = [a for a in attachments if a.type == "image" and a.base64_data]
    t0 = time.time()

    # Logo swaps are deterministic; no model call needed
    if images and is_logo_replacement(instruction):
        print("[edit] Attempting direct logo replacement")
        swapped = replace_logo(html, images[0].data_uri)
        if swapped is not None:
            new_html, strategy = swapped
            return EditResult(
                html=new_html,
                thinking="Direct logo replacement",
                user_message=LOGO_SUCCESS_MESSAGE,
                applied=1,
                total=1,
                strategy=f"logo:{strategy}",
            )
        print("[edit] Direct replacement failed, using model")

    settings = get_settings()
    edit_type = detect_edit_type(instruction)
    print(f"[edit] Detected edit type: {edit_type}, input length: {len(html)}")

    content = [{"type": "text", "text": build_edit_prompt(instruction, html, edit_type)}]
    content.extend(image_block(a.mime_type, a.base64_data) for a in images)

    try:
        completion = await client.complete(
            content,
            max_tokens=settings.edit_max_tokens,
            temperature=settings.edit_temperature,
            label="edit",
        )
    except PipelineError as e:
        print(f"[edit] Model call failed: {e}")
        raise EditError(
            "I couldn't reach the editor just now, so no changes were made. Please try again.",
            retryable=e.retryable,
        ) from e

    parsed = parse_edit_response(completion.text)
    for note in parsed.notes:
        print(f"[edit] {note}")

    if parsed.operations is not None:
        print(f"[edit] Found {len(parsed.operations)} SEARCH/REPLACE operations")
        if not parsed.operations:
            return EditResult(
                html=None,
                thinking=parsed.thought,
                user_message=parsed.message or NO_OPERATIONS_MESSAGE,
            )

        operations = [EditOperation(search=s, replace=r) for s, r in parsed.operations]
        outcome = apply_operations(html, operations)
        print(f"[edit] Applied {outcome.applied} of {outcome.total} operations "
              f"in {time.time() - t0:.1f}s")
        if outcome.applied == 0:
            return EditResult(
                html=None,
                thinking=parsed.thought,
                user_message=NOT_FOUND_MESSAGE,
                total=outcome.total,
                failed_searches=outcome.failed_searches,
            )

        new_html = replace_uploaded_images(outcome.html, images)
        check_structure(new_html)
        return EditResult(
            html=new_html,
            thinking=parsed.thought,
            user_message=parsed.message or DEFAULT_SUCCESS_MESSAGE,
            applied=outcome.applied,
            total=outcome.total,
            failed_searches=outcome.failed_searches,
        )

    if parsed.code_update is not None:
        print("[edit] Using legacy CODE_UPDATE format")
        new_html = parsed.code_update
        ratio = len(new_html) / len(html)
        if ratio < settings.edit_truncation_ratio:
            print(f"[edit] WARNING: CODE_UPDATE appears truncated ({ratio:.2f} of original size)")
            return EditResult(
                html=None,
                thinking=parsed.thought,
                user_message=TRUNCATED_MESSAGE,
                strategy="legacy",
            )
        new_html = replace_uploaded_images(new_html, images)
        check_structure(new_html)
        return EditResult(
            html=new_html,
            thinking=parsed.thought,
            user_message=parsed.message or DEFAULT_SUCCESS_MESSAGE,
            applied=1,
            total=1,
            strategy="legacy",
        )

    print(f"[edit] No operations or CODE_UPDATE block found: {completion.text[:500]!r}")
    return EditResult(
        html=None,
        thinking=parsed.thought,
        user_message=parsed.message or NO_CHANGE_MESSAGE,
    )
