from datetime import date, timedelta
import logging

from models.entities import PaymentStatus

# Set up a module-level logger
log = logging.getLogger(__name__)


def get_tenants_to_move_to_due(tenants: list, days_window: int) -> list:
    """
    Pending tenants whose rent falls due within `days_window` days from today
    (today included). These move from pending to due.
    """
    today = date.today()
    window_end = today + timedelta(days=days_window)
    return [
        tenant for tenant in tenants
        if tenant.payment_status is PaymentStatus.PENDING
        and today <= tenant.due_date.date() <= window_end
    ]


def get_tenants_to_move_to_overdue(tenants: list) -> list:
    """
    Pending or due tenants whose due date has passed. Returns a list of
    dictionaries with the tenant and the status it is moving from.
    """
    today = date.today()
    to_move = []
    for tenant in tenants:
        if tenant.payment_status not in (PaymentStatus.PENDING, PaymentStatus.DUE):
            continue
        if tenant.due_date.date() < today:
            to_move.append({
                'tenant': tenant,
                'source_status': tenant.payment_status,
            })
    return to_move


def get_upcoming_due_tenants(tenants: list, exact_days_from_today: int) -> list:
    """Tenants not yet paid whose rent is due exactly `exact_days_from_today` days from today."""
    target_due_date = date.today() + timedelta(days=exact_days_from_today)
    upcoming = []
    for tenant in tenants:
        if tenant.payment_status is PaymentStatus.PAID:
            continue
        if tenant.due_date.date() == target_due_date:
            upcoming.append(tenant)
    log.info(f"{len(upcoming)} tenants have rent due on {target_due_date.isoformat()}")
    return upcoming
