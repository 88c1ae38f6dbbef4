"""
Branded proposal PDF for Siva Créations.

Fixed page sequence: cover, project brief, selected image, up to three
alternates, contact. Remote images are embedded when they can be fetched;
otherwise a framed text placeholder is drawn, so generation never fails
because an image is missing.
"""
import io
import logging
import os
from datetime import date
from typing import Callable, Dict, List, Optional

from PIL import Image
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFError, TTFont
from reportlab.pdfgen import canvas

from siva_orders.config import settings
from siva_orders.models.order import MAX_ALTERNATES, ProposalData
from siva_orders.utils.images import fetch_image

logger = logging.getLogger(__name__)

PRIMARY = colors.HexColor("#1a1a1a")
GOLD = colors.HexColor("#D4AF37")
LIGHT_GOLD = colors.HexColor("#F4E8B8")
DARK_GOLD = colors.HexColor("#B8860B")
WHITE = colors.HexColor("#FFFFFF")
GRAY = colors.HexColor("#666666")
LIGHT_GRAY = colors.HexColor("#F5F5F5")
BLACK = colors.HexColor("#000000")

# Text styles. Each maps to a TrueType face when one is found under
# PDF_FONTS_DIR; the built-in Helvetica faces only cover WinAnsi (cp1252).
FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
FONT_ITALIC = "Helvetica-Oblique"

TTF_FILES = {
    FONT: "DejaVuSans.ttf",
    FONT_BOLD: "DejaVuSans-Bold.ttf",
    FONT_ITALIC: "DejaVuSans-Oblique.ttf",
}

MARGIN = 50
ELLIPSIS = "…"
BRAND = "SIVA CRÉATIONS"

FRENCH_MONTHS = [
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
]

INTRO_TEXT = (
    "Nous avons l'honneur de vous présenter une création unique, spécialement conçue selon vos désirs.\n\n"
    "Chez Siva Créations, chaque bijou raconte une histoire - la vôtre. Notre équipe d'artisans joailliers "
    "a minutieusement étudié votre demande pour concevoir des propositions qui incarnent parfaitement votre vision.\n\n"
    "Cette proposition représente l'union parfaite entre tradition joaillière française et innovation "
    "contemporaine, pour un résultat à la hauteur de vos attentes les plus exigeantes."
)

ENGAGEMENTS = [
    "Matériaux nobles sélectionnés avec soin",
    "Artisanat français d'excellence",
    "Création unique selon vos spécifications",
    "Garantie à vie sur nos créations",
    "Service après-vente personnalisé",
]

MAIN_DESCRIPTION = (
    "Cette création incarne parfaitement l'essence de votre demande. Chaque détail a été pensé pour "
    "refléter votre personnalité unique et vos aspirations.\n\n"
    "Les lignes élégantes et l'harmonie des proportions créent une pièce d'exception qui saura vous "
    "accompagner dans tous vos moments précieux.\n\n"
    "Cette réalisation représente l'union parfaite entre tradition joaillière et innovation contemporaine, "
    "créant une œuvre d'art portable qui transcende les tendances."
)

ALTERNATE_TEXTS = [
    "Une interprétation audacieuse de votre vision, mêlant modernité et raffinement pour une approche "
    "contemporaine de l'élégance classique.",
    "Cette variation explore une esthétique plus traditionnelle, privilégiant la pureté des lignes et "
    "l'intemporalité du design joaillier français.",
    "Une proposition originale qui revisite les codes traditionnels avec une touche d'innovation créative "
    "et un esprit résolument moderne.",
]

PROCESS_STEPS = [
    "Validation de votre choix et ajustements éventuels",
    "Sélection des matériaux nobles et finitions",
    "Réalisation par nos maîtres artisans (délai : 3-4 semaines)",
    "Contrôle qualité et finitions d'exception",
    "Livraison dans un écrin de luxe personnalisé",
]

CONTACTS = [
    "Email : contact@siva-creations.fr",
    "Téléphone : +33 1 23 45 67 89",
    "Adresse : 123 Rue de la Paix, 75001 Paris",
]

CLOSING_MESSAGE = (
    "Merci de nous avoir fait confiance pour donner vie à votre vision.\n"
    "Nous avons hâte de créer pour vous cette pièce d'exception unique."
)


def french_date(d: date) -> str:
    return f"{d.day} {FRENCH_MONTHS[d.month - 1]} {d.year}"


def alternate_text(position: int) -> str:
    """Canned paragraph for alternate page `position` (1-based)."""
    return ALTERNATE_TEXTS[(position - 1) % len(ALTERNATE_TEXTS)]


def register_fonts(fonts_dir: Optional[str]) -> Dict[str, str]:
    """
    Register the TrueType faces found under `fonts_dir`.

    Returns the face to use for each text style. Styles whose file is missing
    stay on Helvetica.
    """
    faces = {style: style for style in TTF_FILES}
    if not fonts_dir or not os.path.isdir(fonts_dir):
        logger.warning("PDF fonts dir %r not found; using Helvetica (Latin-1 only)", fonts_dir)
        return faces

    found = {}
    for root, _dirs, files in os.walk(fonts_dir):
        for f in files:
            found.setdefault(f, os.path.join(root, f))

    for style, filename in TTF_FILES.items():
        path = found.get(filename)
        if path is None:
            logger.warning("PDF font %s missing from %s; %s stays on Helvetica", filename, fonts_dir, style)
            continue
        name = "Siva-" + os.path.splitext(filename)[0]
        try:
            if name not in pdfmetrics.getRegisteredFontNames():
                pdfmetrics.registerFont(TTFont(name, path))
            faces[style] = name
        except (TTFError, OSError) as e:
            logger.warning("Failed to register PDF font %s: %s", path, e)
    return faces


def missing_glyphs(text: str, face: str) -> str:
    """Characters of `text` that `face` cannot draw, in order of first appearance."""
    font = pdfmetrics.getFont(face)
    if isinstance(font, TTFont):
        def drawable(ch):
            return ord(ch) in font.face.charToGlyph
    else:
        def drawable(ch):
            try:
                ch.encode("cp1252")
                return True
            except UnicodeEncodeError:
                return False

    missing = []
    for ch in text:
        if not ch.isspace() and ch not in missing and not drawable(ch):
            missing.append(ch)
    return "".join(missing)


def fit_lines(lines: List[str], max_lines: int, face: str, size: float, width: float) -> List[str]:
    """Keep at most `max_lines` lines; a cut text ends with an ellipsis that fits `width`."""
    if len(lines) <= max_lines:
        return lines
    kept = lines[:max(1, max_lines)]
    last = kept[-1].rstrip()
    while last and pdfmetrics.stringWidth(last + ELLIPSIS, face, size) > width:
        last = last[:-1].rstrip()
    kept[-1] = last + ELLIPSIS
    return kept


ImageFetcher = Callable[[str], Optional[Image.Image]]


class ProposalGenerator:
    def __init__(self, image_fetcher: Optional[ImageFetcher] = None, page_size=A4,
                 fonts_dir: Optional[str] = None):
        self.fetch = image_fetcher or (lambda url: fetch_image(url, timeout=settings.IMAGE_FETCH_TIMEOUT))
        self.width, self.height = page_size
        self.page_size = page_size
        self.faces = register_fonts(fonts_dir if fonts_dir is not None else settings.PDF_FONTS_DIR)

    def generate(self, data: ProposalData, today: Optional[date] = None) -> bytes:
        buf = io.BytesIO()
        c = canvas.Canvas(buf, pagesize=self.page_size)
        c.setTitle(f"Proposition Siva Créations - {data.client}")
        c.setAuthor("Siva Créations")
        c.setSubject("Proposition joaillerie personnalisée")
        c.setKeywords("joaillerie, bijoux, sur-mesure, luxe")

        self._cover_page(c, data, today or date.today())
        c.showPage()
        self._project_page(c, data)
        c.showPage()
        self._main_image_page(c, data)
        c.showPage()
        for position, url in enumerate(data.other_images[:MAX_ALTERNATES], start=1):
            self._alternate_page(c, url, position)
            c.showPage()
        self._contact_page(c, data)
        c.showPage()
        c.save()

        pdf = buf.getvalue()
        logger.info("Proposal generated order_id=%s alternates=%s size=%s bytes",
                    data.order_id, min(len(data.other_images), MAX_ALTERNATES), len(pdf))
        return pdf

    # -- helpers; y values are measured from the top of the page --

    def _y(self, top: float) -> float:
        return self.height - top

    def _face(self, font: str, text: str) -> str:
        face = self.faces.get(font, font)
        missing = missing_glyphs(text, face)
        if missing:
            logger.warning("Font %s cannot draw %r; those characters are dropped", face, missing)
        return face

    def _text(self, c, text, x, top, font=FONT, size=12, color=PRIMARY, align="left"):
        c.setFont(self._face(font, text), size)
        c.setFillColor(color)
        baseline = self._y(top) - size
        if align == "center":
            c.drawCentredString(x, baseline, text)
        else:
            c.drawString(x, baseline, text)

    def _wrap(self, text, font, size, width) -> List[str]:
        face = self.faces.get(font, font)
        lines = []
        for block in text.split("\n"):
            lines.extend(simpleSplit(block, face, size, width) if block.strip() else [""])
        return lines

    def _lines(self, c, lines, x, top, width, font=FONT, size=12, color=PRIMARY,
               leading=None, align="left") -> float:
        """Draw pre-wrapped lines; returns the top offset just below the last line."""
        leading = leading or size + 4
        c.setFont(self._face(font, "".join(lines)), size)
        c.setFillColor(color)
        y = top
        for line in lines:
            baseline = self._y(y) - size
            if align == "center":
                c.drawCentredString(x + width / 2, baseline, line)
            elif line:
                c.drawString(x, baseline, line)
            y += leading
        return y

    def _paragraphs(self, c, text, x, top, width, font=FONT, size=12, color=PRIMARY,
                    leading=None, align="left") -> float:
        lines = self._wrap(text, font, size, width)
        return self._lines(c, lines, x, top, width, font, size, color, leading, align)

    def _gradient_band(self, c, top, height, stops, positions=None):
        c.saveState()
        p = c.beginPath()
        p.rect(0, self._y(top + height), self.width, height)
        c.clipPath(p, stroke=0, fill=0)
        c.linearGradient(0, self._y(top), 0, self._y(top + height), stops, positions, extend=False)
        c.restoreState()

    def _diamond(self, c, cx, top, half_w, half_h, fill, stroke):
        y = self._y(top)
        p = c.beginPath()
        p.moveTo(cx - half_w, y)
        p.lineTo(cx, y + half_h)
        p.lineTo(cx + half_w, y)
        p.lineTo(cx, y - half_h)
        p.close()
        c.setFillColor(fill)
        c.setStrokeColor(stroke)
        c.setLineWidth(1)
        c.drawPath(p, stroke=1, fill=1)

    def _rule(self, c, top, width=2, color=GOLD):
        c.setStrokeColor(color)
        c.setLineWidth(width)
        c.line(MARGIN, self._y(top), self.width - MARGIN, self._y(top))

    def _heading(self, c, text, top, size=24):
        self._text(c, text, MARGIN, top, FONT_BOLD, size, PRIMARY)

    def _image_or_placeholder(self, c, url, x, top, size, placeholder_lines) -> bool:
        """Embed the image at `url` inside a size x size box, or draw the placeholder."""
        img = self.fetch(url) if url else None
        if img is not None:
            try:
                inset = 10
                c.drawImage(ImageReader(img), x + inset, self._y(top + size - inset),
                            width=size - 2 * inset, height=size - 2 * inset,
                            preserveAspectRatio=True, anchor="c")
                return True
            except Exception as e:
                logger.warning("Could not embed image url=%s: %s", url, e)

        cx = x + size / 2
        mid = top + size / 2
        start = mid - 10 * len(placeholder_lines)
        for i, line in enumerate(placeholder_lines):
            self._text(c, line, cx, start + i * 20, FONT_ITALIC, 14, GRAY, align="center")
        return False

    # -- pages --

    def _cover_page(self, c, data: ProposalData, today: date):
        w, h = self.width, self.height
        cx = w / 2

        self._gradient_band(c, 0, 200, [LIGHT_GOLD, GOLD, DARK_GOLD], [0, 0.5, 1])

        c.saveState()
        c.setStrokeAlpha(0.1)
        c.setStrokeColor(WHITE)
        c.setLineWidth(1)
        for i in range(10):
            x = i * w / 10
            c.line(x, self._y(0), x + 100, self._y(200))
        c.restoreState()

        # title with a drop shadow
        self._text(c, BRAND, cx + 2, 92, FONT_BOLD, 36, BLACK, align="center")
        self._text(c, BRAND, cx, 90, FONT_BOLD, 36, WHITE, align="center")
        self._text(c, "J O A I L L E R I E   D ' E X C E P T I O N", cx, 135, FONT, 16, WHITE, align="center")

        line_top = 180
        c.setStrokeColor(WHITE)
        c.setLineWidth(2)
        c.line(cx - 150, self._y(line_top), cx - 50, self._y(line_top))
        c.line(cx + 50, self._y(line_top), cx + 150, self._y(line_top))
        self._diamond(c, cx, line_top, 15, 10, WHITE, DARK_GOLD)

        self._text(c, "PROPOSITION PERSONNALISÉE", cx, 280, FONT_BOLD, 28, PRIMARY, align="center")

        client_top = 340
        name_w = c.stringWidth(data.client, self.faces[FONT_BOLD], 22)
        pad_x, pad_y = 30, 12
        box_w = min(name_w + 2 * pad_x, w - 2 * MARGIN)
        c.setStrokeColor(GOLD)
        c.setLineWidth(2)
        c.roundRect(cx - box_w / 2, self._y(client_top - pad_y + 48), box_w, 48, 8, stroke=1, fill=0)
        self._text(c, data.client, cx, client_top + 1, FONT_BOLD, 22, GOLD, align="center")

        self._paragraphs(
            c,
            "“Un bijou n'est pas seulement un accessoire,\nc'est l'expression de votre unicité”",
            MARGIN, 450, w - 2 * MARGIN, FONT_ITALIC, 14, GRAY, align="center",
        )
        self._text(c, french_date(today), cx, 520, FONT, 12, GRAY, align="center")

        self._gradient_band(c, h - 100, 100, [LIGHT_GOLD, GOLD])
        c.saveState()
        c.setFillAlpha(0.3)
        c.setStrokeAlpha(0.3)
        c.setFillColor(WHITE)
        c.setStrokeColor(DARK_GOLD)
        for i in range(6):
            c.circle(i * w / 6 + w / 12, 50, 15, stroke=1, fill=1)
        c.restoreState()

    def _project_page(self, c, data: ProposalData):
        w = self.width
        top = 80
        self._heading(c, "VOTRE VISION, NOTRE SAVOIR-FAIRE", top)
        top += 40

        c.saveState()
        c.setLineWidth(3)
        p = c.beginPath()
        p.rect(MARGIN, self._y(top) - 1.5, w - 2 * MARGIN, 3)
        c.clipPath(p, stroke=0, fill=0)
        c.linearGradient(MARGIN, 0, w - MARGIN, 0, [GOLD, DARK_GOLD, GOLD], [0, 0.5, 1], extend=False)
        c.restoreState()
        top += 30

        self._text(c, f"Cher(e) {data.client},", MARGIN, top, FONT_BOLD, 18, GOLD)
        top += 32
        top = self._paragraphs(c, INTRO_TEXT, MARGIN, top, w - 2 * MARGIN, FONT, 12, PRIMARY)
        top += 16

        self._text(c, "VOTRE DEMANDE :", MARGIN, top, FONT_BOLD, 16, GOLD)
        top += 25

        text_w = w - 2 * MARGIN - 20
        lines = self._wrap(f"“{data.demande}”", FONT_ITALIC, 12, text_w)
        # the box shares the page with the engagement list below it
        below = 35 + 25 + len(ENGAGEMENTS) * 18 + MARGIN
        max_lines = int((self.height - top - below - 30) // 15)
        if len(lines) > max_lines:
            logger.warning("Request text cut to %s of %s lines order_id=%s", max_lines, len(lines), data.order_id)
            lines = fit_lines(lines, max_lines, self.faces[FONT_ITALIC], 12, text_w)
        box_h = max(80, len(lines) * 15 + 30)

        c.saveState()
        c.setFillAlpha(0.2)
        c.setFillColor(GRAY)
        c.roundRect(MARGIN + 5, self._y(top + 5 + box_h), w - 2 * MARGIN, box_h, 8, stroke=0, fill=1)
        c.restoreState()

        c.setFillColor(LIGHT_GRAY)
        c.setStrokeColor(GOLD)
        c.setLineWidth(1)
        c.roundRect(MARGIN, self._y(top + box_h), w - 2 * MARGIN, box_h, 8, stroke=1, fill=1)
        self._lines(c, lines, MARGIN + 10, top + 15, text_w, FONT_ITALIC, 12, PRIMARY, leading=15)
        top += box_h + 35

        self._text(c, "NOTRE ENGAGEMENT :", MARGIN, top, FONT_BOLD, 16, GOLD)
        top += 25
        for engagement in ENGAGEMENTS:
            c.setFillColor(GOLD)
            c.circle(MARGIN + 10, self._y(top + 6), 3, stroke=0, fill=1)
            self._text(c, engagement, MARGIN + 25, top, FONT, 12, PRIMARY)
            top += 18

    def _main_image_page(self, c, data: ProposalData):
        w = self.width
        cx = w / 2
        top = 80
        self._heading(c, "VOTRE CRÉATION SÉLECTIONNÉE", top)
        top += 40

        c.setStrokeColor(GOLD)
        c.setLineWidth(2)
        c.line(MARGIN, self._y(top), cx - 20, self._y(top))
        c.line(cx + 20, self._y(top), w - MARGIN, self._y(top))
        self._diamond(c, cx, top, 10, 6, GOLD, DARK_GOLD)
        top += 40

        size = 250
        x = cx - size / 2

        c.saveState()
        c.setFillAlpha(0.3)
        c.setFillColor(GRAY)
        c.roundRect(x + 8, self._y(top + 8 + size), size, size, 20, stroke=0, fill=1)
        c.restoreState()

        c.saveState()
        p = c.beginPath()
        p.roundRect(x - 15, self._y(top - 15 + size + 30), size + 30, size + 30, 20)
        c.clipPath(p, stroke=0, fill=0)
        c.radialGradient(cx, self._y(top + size / 2), size, [LIGHT_GOLD, GOLD], extend=True)
        c.restoreState()

        c.setFillColor(WHITE)
        c.setStrokeColor(DARK_GOLD)
        c.setLineWidth(1)
        c.roundRect(x, self._y(top + size), size, size, 15, stroke=1, fill=1)

        index = data.selected_image.index
        self._image_or_placeholder(
            c, data.selected_image.url, x, top, size,
            ["Image sélectionnée", f"Proposition {index + 1}"],
        )
        top += size + 50

        self._text(c, "UNE CRÉATION QUI VOUS RESSEMBLE", MARGIN, top, FONT_BOLD, 18, GOLD)
        top += 30
        self._paragraphs(c, MAIN_DESCRIPTION, MARGIN, top, w - 2 * MARGIN, FONT, 12, PRIMARY)

    def _alternate_page(self, c, url: str, position: int):
        w = self.width
        cx = w / 2
        top = 80
        self._heading(c, f"PROPOSITION ALTERNATIVE {position}", top, size=22)
        top += 40
        self._rule(c, top)
        top += 40

        size = 200
        x = cx - size / 2
        c.setFillColor(LIGHT_GOLD)
        c.setStrokeColor(GOLD)
        c.setLineWidth(1)
        c.roundRect(x - 5, self._y(top - 5 + size + 10), size + 10, size + 10, 10, stroke=1, fill=1)
        c.setFillColor(WHITE)
        c.setStrokeColor(DARK_GOLD)
        c.roundRect(x, self._y(top + size), size, size, 8, stroke=1, fill=1)

        self._image_or_placeholder(c, url, x, top, size, [f"Alternative {position}"])
        top += size + 40
        self._paragraphs(c, alternate_text(position), MARGIN, top, w - 2 * MARGIN, FONT, 12, PRIMARY)

    def _contact_page(self, c, data: ProposalData):
        w = self.width
        top = 80
        self._heading(c, "PROCHAINES ÉTAPES", top)
        top += 50
        self._rule(c, top, width=3)
        top += 40

        self._text(c, "PROCESSUS DE CRÉATION :", MARGIN, top, FONT_BOLD, 16, GOLD)
        top += 30
        for number, step in enumerate(PROCESS_STEPS, start=1):
            c.setFillColor(GOLD)
            c.setStrokeColor(DARK_GOLD)
            c.setLineWidth(1)
            c.circle(MARGIN + 10, self._y(top + 8), 12, stroke=1, fill=1)
            self._text(c, str(number), MARGIN + 10, top + 3, FONT_BOLD, 10, WHITE, align="center")
            self._text(c, step, MARGIN + 35, top + 2, FONT, 12, PRIMARY)
            top += 25
        top += 30

        self._text(c, "NOUS CONTACTER :", MARGIN, top, FONT_BOLD, 16, GOLD)
        top += 25
        for line in CONTACTS:
            self._text(c, line, MARGIN + 10, top, FONT, 12, PRIMARY)
            top += 20
        top += 40

        c.setFillColor(LIGHT_GOLD)
        c.setStrokeColor(GOLD)
        c.roundRect(MARGIN - 10, self._y(top - 10 + 60), w - 2 * MARGIN + 20, 60, 8, stroke=1, fill=1)
        self._paragraphs(c, CLOSING_MESSAGE, MARGIN, top + 4, w - 2 * MARGIN, FONT_ITALIC, 12, PRIMARY,
                         leading=16, align="center")

        self._text(c, f"Référence commande : {data.order_id}", MARGIN, self.height - 70, FONT, 10, GRAY)
