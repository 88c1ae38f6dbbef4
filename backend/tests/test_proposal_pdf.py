import logging
import os
from datetime import date

import pytest
import requests
from reportlab.pdfbase.pdfmetrics import stringWidth

from siva_orders.models.order import ProposalData, SelectedImage
from siva_orders.services.proposal_pdf import ProposalGenerator, alternate_text, fit_lines, french_date, missing_glyphs
from siva_orders.utils import images as images_module
from siva_orders.utils.images import load_image

from factories import pdf_page_count, pdf_text

DEJAVU_DIR = "/usr/share/fonts/truetype/dejavu"


def proposal(selected="https://img/2.png", index=1, others=None):
    return ProposalData(
        client="Jeanne Dupont",
        email="jeanne@example.com",
        demande="Type: Bague\nStyle: Solitaire\nMatériaux: Or blanc, diamant",
        selected_image=SelectedImage(url=selected, index=index),
        other_images=["https://img/1.png", "https://img/3.png"] if others is None else others,
        order_id="recTest123",
    )


def test_output_is_a_pdf(generator):
    pdf = generator.generate(proposal())
    assert pdf.startswith(b"%PDF")


@pytest.mark.parametrize("others,pages", [([], 5), (["https://a"], 6), (["https://a", "https://b", "https://c"], 8),
                                          (["https://a", "https://b", "https://c", "https://d"], 8)])
def test_page_count_follows_alternates(generator, others, pages):
    pdf = generator.generate(proposal(others=others))
    assert pdf_page_count(pdf) == pages


def test_pages_carry_client_request_and_reference(generator):
    text = pdf_text(generator.generate(proposal(), today=date(2025, 3, 7)))
    assert "Jeanne Dupont" in text
    assert "Solitaire" in text
    assert "recTest123" in text
    assert "PROPOSITION ALTERNATIVE 2" in text
    assert "7 mars 2025" in text


def test_fetched_image_replaces_placeholder(generator, fetched_urls):
    text = pdf_text(generator.generate(proposal()))
    assert "Proposition 2" not in text
    assert fetched_urls[0] == "https://img/2.png"


def test_unreachable_selected_image_renders_placeholder(generator):
    text = pdf_text(generator.generate(proposal(selected="https://unreachable/2.png")))
    assert "Proposition 2" in text


def test_unreachable_alternate_renders_placeholder(generator):
    text = pdf_text(generator.generate(proposal(others=["https://img/1.png", "https://unreachable/3.png"])))
    assert "Alternative 2" in text
    assert "Alternative 1" not in text


def test_default_fetcher_never_fails_generation(monkeypatch):
    def refuse(url, timeout=None):
        raise requests.ConnectionError("no route to host")

    monkeypatch.setattr(images_module.requests, "get", refuse)
    pdf = ProposalGenerator().generate(proposal())
    assert pdf_page_count(pdf) == 6
    assert "Proposition 2" in pdf_text(pdf)


def test_non_image_bytes_are_ignored():
    assert load_image(b"<html>not an image</html>") is None
    assert load_image(b"") is None


def test_canned_alternate_text_cycles():
    assert alternate_text(1) != alternate_text(2)
    assert alternate_text(4) == alternate_text(1)


def test_french_date():
    assert french_date(date(2025, 8, 1)) == "1 août 2025"


def test_long_request_is_cut_to_fit_the_project_page(generator, caplog):
    data = proposal().model_copy(update={"demande": "très long " * 600})
    with caplog.at_level(logging.WARNING, logger="siva_orders.services.proposal_pdf"):
        pdf = generator.generate(data)

    text = pdf_text(pdf)
    assert pdf_page_count(pdf) == 6
    assert "…" in text
    # the engagement list below the request box is still on the page
    assert "Service après-vente personnalisé" in text
    assert "Request text cut" in caplog.text


def test_fit_lines_ends_with_ellipsis_within_width():
    lines = ["une ligne assez longue pour remplir la largeur"] * 5
    kept = fit_lines(lines, 2, "Helvetica-Oblique", 12, 200)
    assert len(kept) == 2
    assert kept[-1].endswith("…")
    assert stringWidth(kept[-1], "Helvetica-Oblique", 12) <= 200
    assert fit_lines(lines, 5, "Helvetica-Oblique", 12, 200) == lines


def test_helvetica_fallback_reports_dropped_characters(tmp_path, caplog):
    generator = ProposalGenerator(image_fetcher=lambda url: None, fonts_dir=str(tmp_path))
    data = proposal().model_copy(update={"client": "Łucja Nowak"})
    with caplog.at_level(logging.WARNING, logger="siva_orders.services.proposal_pdf"):
        generator.generate(data)
    assert "cannot draw 'Ł'" in caplog.text


def test_missing_glyphs_for_builtin_font():
    assert missing_glyphs("Jeanne Dupont, créations œuvre", "Helvetica") == ""
    assert missing_glyphs("Łucja 王芳", "Helvetica") == "Ł王芳"


@pytest.mark.skipif(not os.path.isfile(os.path.join(DEJAVU_DIR, "DejaVuSans.ttf")), reason="DejaVu fonts not installed")
def test_truetype_faces_draw_extended_latin():
    generator = ProposalGenerator(image_fetcher=lambda url: None, fonts_dir=DEJAVU_DIR)
    assert generator.faces["Helvetica"] == "Siva-DejaVuSans"
    data = proposal().model_copy(update={"client": "Łucja Nowak"})
    assert "Łucja Nowak" in pdf_text(generator.generate(data))
