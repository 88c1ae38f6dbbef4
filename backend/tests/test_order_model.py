import pytest
from pydantic import ValidationError

from siva_orders.errors import OrderNotFound
from siva_orders.models.order import Order, OrderStatus, OrderUpdate, ProposalData, effective_status

IMG = ["https://img/1.png", "https://img/2.png", "https://img/3.png", "https://img/4.png"]


def make(images, **kw):
    return Order(id="rec1", client="Jeanne Dupont", demande="Bague", images=images, **kw)


def test_alternates_exclude_selected_and_absent_slots():
    order = make([IMG[0], IMG[1], IMG[2], None])
    assert order.alternates_for(1) == [IMG[0], IMG[2]]


def test_alternates_keep_slot_order_with_gap_before_selection():
    order = make([None, IMG[1], IMG[2], IMG[3]])
    assert order.alternates_for(3) == [IMG[1], IMG[2]]
    assert order.alternates_for(1) == [IMG[2], IMG[3]]


def test_empty_strings_count_as_absent():
    order = make(["", IMG[1], None, ""])
    assert order.images == [None, IMG[1], None, None]
    assert order.populated_images() == [(1, IMG[1])]


def test_image_slots_are_bounded_to_four():
    with pytest.raises(ValidationError):
        make([IMG[0], IMG[1]])
    with pytest.raises(ValidationError):
        OrderUpdate(images=IMG + [None])


@pytest.mark.parametrize("index", [-1, 3, 4])
def test_image_at_rejects_missing_or_out_of_range(index):
    order = make([IMG[0], IMG[1], IMG[2], None])
    with pytest.raises(OrderNotFound):
        order.image_at(index)


def test_status_is_raised_by_populated_fields():
    assert make([None] * 4).status == OrderStatus.generating
    assert make([IMG[0], None, None, None]).status == OrderStatus.images_ready
    assert make([None] * 4, pdf_url="https://pdf").status == OrderStatus.pdf_ready


def test_status_never_goes_below_stored_value():
    assert make([None] * 4, status="sent").status == OrderStatus.sent
    assert effective_status("unknown", [None] * 4, None) == OrderStatus.generating


def test_proposal_data_from_order():
    order = make([IMG[0], IMG[1], IMG[2], IMG[3]], email="j@example.com")
    data = ProposalData.from_order(order, 2)
    assert data.selected_image.url == IMG[2]
    assert data.selected_image.index == 2
    assert data.other_images == [IMG[0], IMG[1], IMG[3]]
    assert data.order_id == "rec1"
