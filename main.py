"""
Console entry point for exploring the scheduling core with demo data.

Usage:
    Slots for a day:   python main.py slots 2026-10-20 --duration 60
    Slots for a week:  python main.py slots 2026-10-19 --duration 60 --days 7 --groomer grm-mike
    Capable groomers:  python main.py slots 2026-10-20 --service svc-teeth
    Quote and book:    python main.py book 2026-10-20T10:00 --service svc-bath --modifier mod-large
"""

import argparse
import logging
import sys
from datetime import date, datetime

from salon_scheduler.config import settings
from salon_scheduler.engine import BookingOrchestrator
from salon_scheduler.errors import SchedulingError, UnknownServiceError
from salon_scheduler.schemas.booking_schema import BookingCandidate, PetBooking, ServiceSelection
from salon_scheduler.store.appointments import AppointmentStore
from salon_scheduler.store.catalog import CatalogStore
from salon_scheduler.store.seed import DEMO_ORG, seed_demo
from salon_scheduler.utils import format_time

logger = logging.getLogger(__name__)


def _build_orchestrator(catalog: CatalogStore) -> BookingOrchestrator:
    seed_demo(catalog)
    return BookingOrchestrator(catalog, AppointmentStore())


def _print_slots(
    orchestrator: BookingOrchestrator, catalog: CatalogStore, args: argparse.Namespace
) -> None:
    start_day = date.fromisoformat(args.date)
    duration = args.duration
    categories = None
    if args.service is not None:
        service = catalog.active_services(DEMO_ORG).get(args.service)
        if service is None:
            raise UnknownServiceError(args.service)
        categories = [service.category.value]
        duration = duration or service.base_duration_minutes
    days = orchestrator.availability.generate_slots_for_range(
        start_day, args.days, duration or 60, DEMO_ORG, args.groomer, categories
    )
    for day, slots in days.items():
        free = [s for s in slots if s.available]
        print(f"{day.isoformat()} ({day.strftime('%A')}): {len(free)} of {len(slots)} slots free")
        for slot in free:
            print(f"  {format_time(slot.start_time)} - {format_time(slot.end_time)}  {slot.groomer_id}")


def _book(
    orchestrator: BookingOrchestrator, catalog: CatalogStore, args: argparse.Namespace
) -> None:
    hours = catalog.get_business_hours(DEMO_ORG)
    start = datetime.fromisoformat(args.start).replace(tzinfo=hours.tzinfo)
    candidate = BookingCandidate(
        organization_id=DEMO_ORG,
        client_id="client-console",
        is_new_client=args.new_client,
        groomer_id=args.groomer,
        start_time=start,
        pets=[PetBooking(
            pet_id="pet-console",
            services=[ServiceSelection(service_id=args.service, modifier_ids=args.modifier)],
        )],
    )
    quote = orchestrator.quote(candidate)
    print(
        f"Quote: {quote.totals.total_duration} min, ${quote.totals.total_price}, "
        f"deposit ${quote.deposit}, {quote.confirmation_mode.value}"
    )
    appointment = orchestrator.create_appointment(candidate)
    print(
        f"Booked {appointment.id} with {appointment.groomer_id}: "
        f"{format_time(appointment.start_time)} - {format_time(appointment.end_time)} "
        f"[{appointment.status.value}]"
    )


def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(description=f"{settings.service_name} console")
    sub = parser.add_subparsers(dest="command", required=True)

    slots = sub.add_parser("slots", help="List bookable slots")
    slots.add_argument("date", help="First day, YYYY-MM-DD")
    slots.add_argument("--duration", type=int, default=None,
                       help="Required minutes (default: the service's length, else 60)")
    slots.add_argument("--service", default=None,
                       help="Only groomers able to perform this service")
    slots.add_argument("--days", type=int, default=1, help="Number of consecutive days")
    slots.add_argument("--groomer", default=None, help="Groomer id (default: any)")

    book = sub.add_parser("book", help="Quote and commit one appointment")
    book.add_argument("start", help="Local start, YYYY-MM-DDTHH:MM")
    book.add_argument("--service", required=True)
    book.add_argument("--modifier", action="append", default=[])
    book.add_argument("--groomer", default=None)
    book.add_argument("--new-client", action="store_true")

    args = parser.parse_args(argv)
    catalog = CatalogStore()
    orchestrator = _build_orchestrator(catalog)
    try:
        if args.command == "slots":
            _print_slots(orchestrator, catalog, args)
        else:
            _book(orchestrator, catalog, args)
    except SchedulingError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
