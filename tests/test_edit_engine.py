"""
Tests for the diff-based edit engine
"""
import random
import string

import pytest

from conftest import FakeModelClient
from sitegen.edit_engine import (
    NOT_FOUND_MESSAGE,
    TRUNCATED_MESSAGE,
    apply_operation,
    apply_operations,
    detect_edit_type,
    edit_site,
    replace_uploaded_images,
    whitespace_tolerant_pattern,
)
from sitegen.errors import EditError, ModelCallError, PipelineError
from sitegen.models import Attachment, EditOperation


DOC = """<nav class="flex"><a href="#" class="text-xl font-bold">Acme</a></nav>
<section id="hero">
  <h1 class="text-4xl   font-bold">Welcome to Acme</h1>
  <p class="text-gray-600">We fix things.</p>
</section>"""

ATTACHMENT = Attachment(mime_type="image/png", base64_data="TkVX")


def ops_response(*pairs, message="Done!"):
    body = "\n".join(f"[SEARCH]\n{s}\n[/SEARCH]\n[REPLACE]\n{r}\n[/REPLACE]" for s, r in pairs)
    return f"<thought>plan</thought>\n<response>{message}</response>\n<operations>\n{body}\n</operations>"


class TestApplyOperations:

    def test_exact_match_replaces_all_occurrences(self):
        html, applied = apply_operation("a-x-a", EditOperation(search="a", replace="b"))

        assert applied
        assert html == "b-x-b"

    def test_operations_fold_in_order(self):
        outcome = apply_operations("A", [
            EditOperation(search="A", replace="B"),
            EditOperation(search="B", replace="C"),
        ])

        assert outcome.html == "C"
        assert outcome.applied == 2
        assert outcome.total == 2

    def test_empty_replace_deletes(self):
        html, applied = apply_operation(DOC, EditOperation(search='<p class="text-gray-600">We fix things.</p>'))

        assert applied
        assert "We fix things." not in html

    def test_failed_searches_reported_with_preview(self):
        outcome = apply_operations(DOC, [
            EditOperation(search="nowhere to be found", replace="x"),
            EditOperation(search="Acme</a>", replace="Acme Co</a>"),
        ])

        assert outcome.applied == 1
        assert outcome.failed_searches == ["nowhere to be found..."]

    def test_empty_search_never_applies(self):
        html, applied = apply_operation(DOC, EditOperation(search="", replace="x"))

        assert not applied
        assert html == DOC

    def test_zero_applications_leave_document_identical(self):
        outcome = apply_operations(DOC, [EditOperation(search="missing", replace="x")])

        assert outcome.applied == 0
        assert outcome.html is DOC


class TestWhitespaceTolerance:

    @pytest.mark.parametrize("search,matches", [
        ('<h1 class="text-4xl font-bold">', True),          # single space vs three
        ('<h1 class="text-4xl\tfont-bold">', True),          # tab vs spaces
        ('<h1 class="text-4xl\n   font-bold">', True),       # newline run
        ('  <h1 class="text-4xl font-bold">  ', True),       # padding trimmed
        ('<h1 class="text-4xlfont-bold">', False),           # whitespace is required
        ('<h1 class="text-4xl font-bold" >', False),         # extra whitespace in search
        ('<h1 class="text-4xl.font-bold">', False),          # regex metachar stays literal
    ])
    def test_pinned_variants(self, search, matches):
        html, applied = apply_operation(DOC, EditOperation(search=search, replace="<h1>"))

        assert applied is matches
        if matches:
            assert "<h1>Welcome to Acme</h1>" in html

    def test_replacement_is_literal(self):
        html, applied = apply_operation("a  b", EditOperation(search="a b", replace=r"\1 $& \g<0>"))

        assert applied
        assert html == r"\1 $& \g<0>"

    @pytest.mark.parametrize("seed", range(50))
    def test_any_whitespace_runs_match(self, seed):
        rng = random.Random(seed)
        alphabet = string.ascii_letters + string.digits + '<>/="-.*+?()[]{}|^$\\'
        tokens = ["".join(rng.choices(alphabet, k=rng.randint(1, 8))) for _ in range(rng.randint(1, 6))]

        def spaced():
            return "".join(rng.choices(" \t\n\r", k=rng.randint(1, 4)))

        document = "\u00a7" + spaced() + spaced().join(tokens) + spaced() + "\u00b6"
        search = spaced() + spaced().join(tokens) + spaced()

        html, applied = apply_operation(document, EditOperation(search=search, replace="@@"))

        assert applied
        assert html.startswith("\u00a7") and html.endswith("\u00b6")
        assert "@@" in html
        if len(tokens) > 1:
            # Whitespace between tokens is never optional
            _, glued_applied = apply_operation(document, EditOperation(search="".join(tokens), replace="@@"))
            assert not glued_applied

    def test_whitespace_only_search_has_no_pattern(self):
        assert whitespace_tolerant_pattern("   \n ") is None


@pytest.mark.parametrize("instruction,expected", [
    ("Make the buttons blue", "color_change"),
    ("background to black", "color_change"),
    ("remove the subtitle", "text_removal"),
    ("delete 'Call now'", "text_removal"),
    ("Change the heading text", "text_change"),
    ("please rephrase the intro", "text_change"),
    ("add a pricing section", "section_add"),
    ("move the testimonials up", "layout_change"),
    ("more padding please", "layout_change"),
    ("swap the photo", "layout_change"),
    ("replace the hero image", "image_change"),
    ("use a serif font", "typography_change"),
    ("add a hover effect", "animation_change"),
    ("make it pop", "general_edit"),
])
def test_detect_edit_type(instruction, expected):
    assert detect_edit_type(instruction) == expected


def test_replace_uploaded_images():
    second = Attachment(mime_type="image/jpeg", base64_data="U0VD")

    html = replace_uploaded_images('<img src="[[UPLOADED_IMAGE_2]]"><img src="[[UPLOADED_IMAGE_1]]">',
                                   [ATTACHMENT, second])

    assert html == '<img src="data:image/jpeg;base64,U0VD"><img src="data:image/png;base64,TkVX">'


class TestEditSite:

    @pytest.mark.asyncio
    async def test_applies_operations(self):
        client = FakeModelClient([ops_response(("Welcome to Acme", "Hello from Acme"),
                                               message="Updated the headline.")])

        result = await edit_site(client, "change the headline text", DOC)

        assert result.success
        assert "Hello from Acme" in result.html
        assert result.user_message == "Updated the headline."
        assert result.thinking == "plan"
        assert (result.applied, result.total) == (1, 1)
        assert "# EDIT TYPE: TEXT_CHANGE" in client.calls[0]["prompt"]

    @pytest.mark.asyncio
    async def test_nothing_applied_is_a_failure(self):
        client = FakeModelClient([ops_response(("not in doc", "x"))])

        result = await edit_site(client, "change something", DOC)

        assert result.html is None
        assert result.user_message == NOT_FOUND_MESSAGE
        assert result.failed_searches == ["not in doc..."]

    @pytest.mark.asyncio
    async def test_empty_operations_block(self):
        client = FakeModelClient(["<response>Which part?</response><operations></operations>"])

        result = await edit_site(client, "make it pop", DOC)

        assert result.html is None
        assert result.user_message == "Which part?"

    @pytest.mark.asyncio
    async def test_legacy_full_document_accepted(self):
        new_doc = DOC.replace("Acme", "Acme Co")
        client = FakeModelClient([f"[CODE_UPDATE]\n{new_doc}\n[/CODE_UPDATE]"])

        result = await edit_site(client, "rename to Acme Co", DOC)

        assert result.html == new_doc
        assert result.strategy == "legacy"

    @pytest.mark.asyncio
    async def test_truncated_legacy_document_rejected(self):
        client = FakeModelClient([f"[CODE_UPDATE]\n{DOC[:len(DOC) // 3]}\n[/CODE_UPDATE]"])

        result = await edit_site(client, "rename to Acme Co", DOC)

        assert result.html is None
        assert result.user_message == TRUNCATED_MESSAGE

    @pytest.mark.asyncio
    async def test_no_structured_output(self):
        client = FakeModelClient(["Sorry, I am not sure."])

        result = await edit_site(client, "do a thing", DOC)

        assert result.html is None

    @pytest.mark.asyncio
    async def test_uploaded_image_tokens_resolved(self):
        client = FakeModelClient([ops_response(
            ('<p class="text-gray-600">We fix things.</p>', '<img src="[[UPLOADED_IMAGE_1]]">')
        )])

        result = await edit_site(client, "put this photo under the headline", DOC, [ATTACHMENT])

        assert '<img src="data:image/png;base64,TkVX">' in result.html
        assert client.calls[0]["content"][1]["type"] == "image"

    @pytest.mark.asyncio
    async def test_logo_fast_path_skips_model(self):
        client = FakeModelClient([])

        result = await edit_site(client, "replace the logo with this", DOC, [ATTACHMENT])

        assert client.calls == []
        assert result.strategy == "logo:nav-text-logo"
        assert ATTACHMENT.data_uri in result.html
        assert result.user_message == "Done! I've replaced the logo with your uploaded image."

    @pytest.mark.asyncio
    async def test_logo_request_without_attachment_uses_model(self):
        client = FakeModelClient([ops_response(("Acme</a>", "ACME</a>"))])

        result = await edit_site(client, "change the logo text", DOC)

        assert len(client.calls) == 1
        assert "ACME</a>" in result.html

    @pytest.mark.asyncio
    async def test_model_failure_raises_edit_error(self):
        client = FakeModelClient([ModelCallError("down", status_code=503, retryable=True)])

        with pytest.raises(EditError) as exc_info:
            await edit_site(client, "make it blue", DOC)

        assert "no changes were made" in exc_info.value.message
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_missing_instruction_rejected(self):
        with pytest.raises(PipelineError):
            await edit_site(FakeModelClient([]), "  ", DOC)
