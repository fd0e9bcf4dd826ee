"""
Tests for the site assembler and the visible-content check
"""
import pytest

from sitegen.errors import EmptyDocumentError
from sitegen.models import BrandManifest, SectionResult
from sitegen.site_assembler import assemble_site, ensure_visible, has_visible_content


def _result(section_id, body=None):
    return SectionResult(
        id=section_id,
        type=section_id,
        html=f'<section id="{section_id}">{body or section_id.upper()}</section>',
        success=True,
    )


class TestAssembleSite:

    def test_sections_follow_blueprint_priority(self, manifest, blueprint):
        results = [_result("contact"), _result("hero"), _result("about"), _result("services")]

        html = assemble_site(manifest, blueprint, results, year=2025)

        positions = [html.index(f'<section id="{sid}"') for sid in ("hero", "services", "about", "contact")]
        assert positions == sorted(positions)

    def test_input_order_does_not_matter(self, manifest, blueprint):
        results = [_result("hero"), _result("services"), _result("about"), _result("contact")]

        forward = assemble_site(manifest, blueprint, results, year=2025)
        backward = assemble_site(manifest, blueprint, list(reversed(results)), year=2025)

        assert forward == backward

    def test_unknown_sections_go_last_in_input_order(self, manifest, blueprint):
        results = [_result("extra-b"), _result("contact"), _result("extra-a"), _result("hero")]

        html = assemble_site(manifest, blueprint, results, year=2025)

        order = [html.index(f'id="{sid}"') for sid in ("hero", "contact", "extra-b", "extra-a")]
        assert order == sorted(order)

    def test_root_id_enforced(self, manifest, blueprint):
        results = [SectionResult(id="hero", type="hero", html="<div>Hero body</div>", success=True)]

        html = assemble_site(manifest, blueprint, results, year=2025)

        assert '<section id="hero"' in html

    def test_document_shell(self, manifest, blueprint):
        html = assemble_site(manifest, blueprint, [_result("hero")], year=2031)

        assert html.startswith("<!DOCTYPE html>")
        assert "https://cdn.tailwindcss.com" in html
        assert "family=Playfair+Display:wght@400;500;600;700&family=Inter" in html
        assert "primary: '#112233'" in html
        assert "headline: ['Playfair Display', 'sans-serif']" in html
        assert '<main class="pt-16">' in html
        assert "&copy; 2031 Harbor Dental. All rights reserved." in html
        assert 'id="mobile-menu"' in html
        assert "scrollIntoView" in html
        assert html.rstrip().endswith("</html>")

    def test_nav_and_footer_links(self, manifest, blueprint):
        html = assemble_site(manifest, blueprint, [_result("hero")], year=2025)

        assert html.count('href="#services"') == 3  # desktop, mobile, quick links
        assert '<a href="#contact"' in html
        assert "Book a visit" in html
        assert "<li>555-0100</li>" in html
        assert "<li>1 Pier Rd</li>" in html

    def test_manifest_text_is_escaped(self, manifest, blueprint):
        hostile = manifest.model_copy(update={
            "business_name": "<script>alert(1)</script> & Co",
            "tagline": 'Say "hi"',
        })

        html = assemble_site(hostile, blueprint, [_result("hero")], year=2025)

        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;alert(1)&lt;/script&gt; &amp; Co" in html
        assert "Say &quot;hi&quot;" in html

    def test_missing_contact_lines_omitted(self, blueprint):
        manifest = BrandManifest(business_name="Acme", primary_color="#1",
                                 secondary_color="#2", accent_color="#3")

        html = assemble_site(manifest, blueprint, [_result("hero")], year=2025)

        assert "<li>None</li>" not in html

    def test_deterministic_for_fixed_year(self, manifest, blueprint):
        results = [_result("hero"), _result("contact")]

        assert assemble_site(manifest, blueprint, results, year=2025) == assemble_site(
            manifest, blueprint, results, year=2025
        )


class TestVisibleContent:

    @pytest.mark.parametrize("html,visible", [
        ("<section id='a'>Hello</section>", True),
        ("<nav><a href='#'>Home</a></nav>", True),
        ("<main><p>Text</p></main>", True),
        ("<section id='a'></section>", False),
        ("<div>Text but no structure</div>", False),
        ("<section><script>var x = 1;</script><style>p{}</style></section>", False),
        ("", False),
    ])
    def test_has_visible_content(self, html, visible):
        assert has_visible_content(html) is visible

    def test_ensure_visible_raises(self):
        with pytest.raises(EmptyDocumentError):
            ensure_visible("<html><head><title>x</title></head><body></body></html>")

    def test_assembled_site_is_visible(self, manifest, blueprint):
        html = assemble_site(manifest, blueprint, [_result("hero")], year=2025)

        assert ensure_visible(html) == html
