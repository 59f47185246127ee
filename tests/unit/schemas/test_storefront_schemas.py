from datetime import datetime, timezone
from mobycomps.domain.cart.schemas import CartItemAddDTO, CartReadDTO
from mobycomps.domain.payments.schemas import SettleRequestDTO
from mobycomps.domain.tickets.schemas import ReservationReadDTO, TicketStatusSummaryDTO


def test_cart_item_add_accepts_camel_case_and_snake_case():
    assert CartItemAddDTO.model_validate({"competitionId": 3, "numbers": [1, 2]}).competition_id == 3
    assert CartItemAddDTO.model_validate({"competition_id": 3, "numbers": [1]}).competition_id == 3


def test_settle_request_uses_camel_case_key():
    assert SettleRequestDTO.model_validate({"paymentRef": "pay_1"}).payment_ref == "pay_1"


def test_cart_read_serializes_camel_case():
    expires_at = datetime(2025, 1, 1, 12, 15, tzinfo=timezone.utc)
    cart = CartReadDTO(
        items=[{
            "id": 1,
            "competition_id": 2,
            "competition_title": "Cash",
            "ticket_numbers": [4, 5],
            "ticket_price": 100,
            "subtotal": 200,
            "expires_at": expires_at,
        }],
        expires_at=expires_at,
        seconds_left=900,
        total=200,
        currency="GBP",
    )

    dumped = cart.model_dump(by_alias=True)

    assert dumped["secondsLeft"] == 900
    assert dumped["items"][0]["ticketNumbers"] == [4, 5]
    assert dumped["items"][0]["competitionTitle"] == "Cash"


def test_reservation_and_summary_serialize_camel_case():
    expires_at = datetime(2025, 1, 1, 12, 15, tzinfo=timezone.utc)

    assert ReservationReadDTO(reserved=[1], expires_at=expires_at).model_dump(by_alias=True) == {
        "reserved": [1],
        "expiresAt": expires_at,
    }
    summary = TicketStatusSummaryDTO(
        competition_id=1, total_tickets=10, available=5, reserved=2, purchased=3, sold_out_percentage=30
    )
    assert summary.model_dump(by_alias=True)["soldOutPercentage"] == 30
