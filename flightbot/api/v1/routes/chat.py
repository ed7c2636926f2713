import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path

from flightbot.api.deps import get_booking_dialog, get_session_store
from flightbot.schemas.chat import ReplyIn, StartBookingIn, TurnOut
from flightbot.services.booking_dialog import BookingDialog, DialogTurn
from flightbot.services.passenger_collection import DialogStateError
from flightbot.services.session_store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

# stored in bookings.conversation_id and audit_logs.actor
ConversationId = Annotated[str, Path(min_length=1, max_length=120)]


def _finish_turn(conversation_id: str, turn: DialogTurn, store: SessionStore) -> TurnOut:
    if turn.ended or turn.session is None:
        store.delete(conversation_id)
    else:
        store.save(conversation_id, turn.session)
    booking = turn.booking
    return TurnOut(
        conversationId=conversation_id,
        messages=turn.messages,
        ended=turn.ended,
        outcome=turn.outcome,
        bookingId=booking.booking_id if booking else None,
    )


@router.post("/{conversation_id}/booking", response_model=TurnOut)
def start_booking(
    conversation_id: ConversationId,
    body: StartBookingIn,
    dialog: BookingDialog = Depends(get_booking_dialog),
    store: SessionStore = Depends(get_session_store),
):
    if store.load(conversation_id) is not None:
        logger.info("Replacing booking in progress for conversation=%s", conversation_id)
    turn = dialog.start(body.flight, body.searchParams, conversation_id=conversation_id)
    return _finish_turn(conversation_id, turn, store)


@router.post("/{conversation_id}/messages", response_model=TurnOut)
def reply(
    conversation_id: ConversationId,
    body: ReplyIn,
    dialog: BookingDialog = Depends(get_booking_dialog),
    store: SessionStore = Depends(get_session_store),
):
    session = store.load(conversation_id)
    if session is None:
        raise HTTPException(status_code=404, detail="No booking in progress for this conversation")
    try:
        turn = dialog.advance(session, body.text)
    except DialogStateError as e:
        logger.error("Booking dialog broke for conversation=%s: %s", conversation_id, e)
        store.delete(conversation_id)
        raise HTTPException(status_code=409, detail="Booking could not continue. Please start again.")
    return _finish_turn(conversation_id, turn, store)


@router.delete("/{conversation_id}/booking")
def cancel_booking(conversation_id: ConversationId, store: SessionStore = Depends(get_session_store)):
    existed = store.load(conversation_id) is not None
    store.delete(conversation_id)
    return {"ok": True, "cancelled": existed}
