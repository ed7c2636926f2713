from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from flightbot.db.session import get_db
from flightbot.schemas.booking import BookingOut, PassengerOut
from flightbot.services.booking_store import get_booking

router = APIRouter(tags=["bookings"])


@router.get("/bookings/{booking_id}", response_model=BookingOut)
def read_booking(booking_id: str, db: Session = Depends(get_db)):
    found = get_booking(db, booking_id)
    if not found:
        raise HTTPException(status_code=404, detail="Not found")
    b, pax = found
    return BookingOut(
        bookingId=b.booking_id,
        status=b.status,
        airline=b.airline or "",
        flightNumber=b.flight_number or "",
        routeFrom=b.route_from or "",
        routeTo=b.route_to or "",
        departureDate=b.departure_date or "",
        passengerCount=b.passenger_count,
        totalAmount=f"{b.total_amount:.2f}",
        currency=b.currency,
        paymentMethod=b.payment_method,
        paymentId=b.payment_id,
        transactionId=b.transaction_id,
        bookingDate=b.booking_date.isoformat() if b.booking_date else None,
        passengers=[PassengerOut(fullName=p.full_name, email=p.email, phone=p.phone) for p in pax],
    )
