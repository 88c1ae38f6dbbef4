"""Test doubles and helpers shared across the test modules."""
from io import BytesIO

from pdfminer.high_level import extract_pages, extract_text
from PIL import Image

from siva_orders.services.relay import RelayClient, RelayResult


class RecordingRelay(RelayClient):
    """Relay double: records every payload, succeeds unless told otherwise."""

    def __init__(self, succeed: bool = True):
        super().__init__()
        self.succeed = succeed
        self.calls = []

    def _post(self, name, url, payload):
        self.calls.append((name, payload))
        if self.succeed:
            return RelayResult(success=True, data={"ok": True})
        return RelayResult(success=False, error="relay unavailable")

    def payloads(self, name):
        return [p for n, p in self.calls if n == name]


def gold_square(size=40):
    return Image.new("RGB", (size, size), (212, 175, 55))


def pdf_text(pdf: bytes) -> str:
    return extract_text(BytesIO(pdf))


def pdf_page_count(pdf: bytes) -> int:
    return sum(1 for _ in extract_pages(BytesIO(pdf)))
