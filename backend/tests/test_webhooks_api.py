import re

import pytest

from factories import pdf_page_count, pdf_text

IMAGES = ["https://img/1.png", "https://img/2.png", "https://img/3.png", None]


# -- PDF download --

def test_download_streams_pdf_attachment(client, make_order):
    order = make_order(images=IMAGES)
    resp = client.post("/pdf/download", json={"orderId": order.id, "selectedImageIndex": 1})
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert re.fullmatch(r'attachment; filename="proposition_Jeanne_Dupont_\d+\.pdf"',
                        resp.headers["content-disposition"])
    assert resp.content.startswith(b"%PDF")
    # cover, project, main, 2 alternates, contact
    assert pdf_page_count(resp.content) == 6


@pytest.mark.parametrize("client_name,ascii_name,encoded", [
    ("Łucja Nowak", "ucja_Nowak", "%C5%81ucja_Nowak"),
    ("Nguyễn Thị Lan", "Nguyen_Thi_Lan", "Nguy%E1%BB%85n_Th%E1%BB%8B_Lan"),
    ("王芳", "", "%E7%8E%8B%E8%8A%B3"),
])
def test_download_non_latin1_client_name(client, make_order, client_name, ascii_name, encoded):
    order = make_order(client=client_name, images=IMAGES)
    resp = client.post("/pdf/download", json={"orderId": order.id, "selectedImageIndex": 0})
    assert resp.status_code == 200
    disposition = resp.headers["content-disposition"]
    assert re.fullmatch(r'attachment; filename="proposition_' + re.escape(ascii_name) + r'_?\d+\.pdf"; '
                        r"filename\*=UTF-8''proposition_" + re.escape(encoded) + r"_\d+\.pdf", disposition)
    assert resp.content.startswith(b"%PDF")


def test_download_uses_selected_and_populated_alternates(client, make_order, fetched_urls, store):
    order = make_order(images=IMAGES)
    client.post("/pdf/download", json={"orderId": order.id, "selectedImageIndex": 1})
    assert fetched_urls == ["https://img/2.png", "https://img/1.png", "https://img/3.png"]
    assert store.get_order(order.id).selected_image == 1


def test_download_with_unreachable_image_still_succeeds(client, make_order):
    order = make_order(images=["https://unreachable/1.png", None, None, None])
    resp = client.post("/pdf/download", json={"orderId": order.id, "selectedImageIndex": 0})
    assert resp.status_code == 200
    assert "Proposition 1" in pdf_text(resp.content)


def test_download_empty_slot_is_404(client, make_order):
    order = make_order(images=IMAGES)
    resp = client.post("/pdf/download", json={"orderId": order.id, "selectedImageIndex": 3})
    assert resp.status_code == 404
    assert resp.json()["error"] == "Selected image not found"


def test_download_requires_fields(client):
    assert client.post("/pdf/download", json={"orderId": "rec1"}).status_code == 400
    assert client.post("/pdf/download", json={"selectedImageIndex": 0}).status_code == 400


# -- relay-backed PDF generation --

def test_generate_pdf_notifies_relay_with_alternates(client, relay, make_order, store):
    order = make_order(images=IMAGES)
    resp = client.post("/webhooks/generate-pdf", json={"orderId": order.id, "selectedImageIndex": 1})
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    payload = relay.payloads("pdf_generation")[0]
    assert payload["selectedImageIndex"] == 1
    assert payload["selectedImageUrl"] == "https://img/2.png"
    assert payload["otherImages"] == ["https://img/1.png", "https://img/3.png"]
    assert payload["clientData"] == {"name": "Jeanne Dupont", "email": "jeanne.dupont@example.com"}
    assert store.get_order(order.id).selected_image == 1


def test_generate_pdf_relay_failure_is_500(client, relay, make_order):
    relay.succeed = False
    order = make_order(images=IMAGES)
    resp = client.post("/webhooks/generate-pdf", json={"orderId": order.id, "selectedImageIndex": 0})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Failed to generate PDF"


def test_generate_pdf_unknown_order_is_404(client):
    resp = client.post("/webhooks/generate-pdf", json={"orderId": "recNope", "selectedImageIndex": 0})
    assert resp.status_code == 404
    assert resp.json()["error"] == "Order not found"


# -- edit image --

def test_edit_image_forwards_current_url(client, relay, make_order, store):
    order = make_order(images=IMAGES)
    resp = client.post("/webhooks/edit-image",
                       json={"orderId": order.id, "imageIndex": 2, "instruction": "Monture plus fine"})
    assert resp.status_code == 200
    assert relay.payloads("image_edit") == [{
        "orderId": order.id,
        "imageIndex": 2,
        "editInstruction": "Monture plus fine",
        "currentImageUrl": "https://img/3.png",
    }]
    # the relay replaces the image out of band
    assert store.get_order(order.id).images == IMAGES


def test_edit_image_unknown_order_is_404_not_500(client, relay):
    resp = client.post("/webhooks/edit-image", json={"orderId": "recNope", "imageIndex": 0, "instruction": "Plus fin"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "Order not found"
    assert relay.calls == []


def test_edit_image_missing_slot_is_404(client, make_order):
    order = make_order(images=IMAGES)
    resp = client.post("/webhooks/edit-image", json={"orderId": order.id, "imageIndex": 3, "instruction": "Plus fin"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "Image not found"


def test_edit_image_short_instruction_is_400(client, make_order):
    order = make_order(images=IMAGES)
    resp = client.post("/webhooks/edit-image", json={"orderId": order.id, "imageIndex": 0, "instruction": "ok"})
    assert resp.status_code == 400


def test_edit_image_relay_failure_is_500(client, relay, make_order):
    relay.succeed = False
    order = make_order(images=IMAGES)
    resp = client.post("/webhooks/edit-image", json={"orderId": order.id, "imageIndex": 0, "instruction": "Plus fin"})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Failed to edit image"


# -- send proposal --

def test_send_proposal_marks_order_sent(client, relay, make_order):
    order = make_order(images=IMAGES, pdf_url="https://pdf/jeanne.pdf")
    resp = client.post("/webhooks/send-proposal",
                       json={"orderId": order.id, "recipientEmail": "jeanne.dupont@example.com"})
    assert resp.status_code == 200
    assert relay.payloads("send_proposal") == [{
        "orderId": order.id,
        "recipientEmail": "jeanne.dupont@example.com",
        "clientName": "Jeanne Dupont",
        "pdfUrl": "https://pdf/jeanne.pdf",
    }]
    assert client.get(f"/orders/{order.id}").json()["order"]["status"] == "sent"


def test_send_proposal_without_pdf_is_404(client, relay, make_order):
    order = make_order(images=IMAGES)
    resp = client.post("/webhooks/send-proposal", json={"orderId": order.id, "recipientEmail": "j@example.com"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "PDF not found for this order"
    assert relay.calls == []


def test_send_proposal_unknown_order_is_404_not_500(client):
    resp = client.post("/webhooks/send-proposal", json={"orderId": "recNope", "recipientEmail": "j@example.com"})
    assert resp.status_code == 404
    assert resp.json()["error"] == "Order not found"


def test_send_proposal_relay_failure_leaves_status(client, relay, make_order):
    relay.succeed = False
    order = make_order(images=IMAGES, pdf_url="https://pdf/jeanne.pdf")
    resp = client.post("/webhooks/send-proposal", json={"orderId": order.id, "recipientEmail": "j@example.com"})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Failed to send proposal"
    assert client.get(f"/orders/{order.id}").json()["order"]["status"] == "pdf_ready"


def test_send_proposal_requires_valid_email(client, make_order):
    order = make_order(pdf_url="https://pdf/jeanne.pdf")
    resp = client.post("/webhooks/send-proposal", json={"orderId": order.id, "recipientEmail": "nope"})
    assert resp.status_code == 400
