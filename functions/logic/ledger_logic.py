from collections import defaultdict
from datetime import datetime, timedelta
import logging

from models.entities import INCOME_CATEGORIES, PaymentStatus, TransactionCategory, TransactionType

log = logging.getLogger(__name__)


def direction_for_category(category: TransactionCategory) -> TransactionType:
    """Recognized receipts for rent or salary are income, everything else is an expense."""
    return TransactionType.INCOME if TransactionCategory(category) in INCOME_CATEGORIES else TransactionType.EXPENSE


def get_totals(transactions) -> dict:
    total_income = sum(t.amount for t in transactions if t.direction is TransactionType.INCOME)
    total_expense = sum(t.amount for t in transactions if t.direction is TransactionType.EXPENSE)
    return {
        'total_income': total_income,
        'total_expense': total_expense,
        'net_balance': total_income - total_expense,
    }


def get_income_by_category(transactions) -> dict:
    income = defaultdict(float)
    for t in transactions:
        if t.direction is TransactionType.INCOME:
            income[t.category.value] += t.amount
    return dict(income)


def get_monthly_summary(transactions, label_format: str = '%b %Y') -> list:
    """
    Income and expense per calendar month, oldest month first.
    Returns a list of {'month': label, 'income': float, 'expense': float}.
    """
    months = {}
    for t in transactions:
        key = (t.date.year, t.date.month)
        if key not in months:
            months[key] = {'month': t.date.strftime(label_format), 'income': 0.0, 'expense': 0.0}
        if t.direction is TransactionType.INCOME:
            months[key]['income'] += t.amount
        else:
            months[key]['expense'] += t.amount
    return [months[key] for key in sorted(months)]


def sort_newest_first(transactions) -> list:
    return sorted(transactions, key=lambda t: t.date, reverse=True)


def find_duplicate_transaction(transactions, amount: float, date: datetime):
    """An existing transaction with the same amount on the same day, if any."""
    for t in transactions:
        if t.amount == amount and t.date.date() == date.date():
            return t
    return None


def get_pending_receipts(tenants) -> list:
    """
    Tenants with an open payment cycle (due or overdue), with the date payment is
    expected by: receipt generation date plus the tenant's net terms.
    """
    pending = []
    for tenant in tenants:
        if tenant.payment_status not in (PaymentStatus.DUE, PaymentStatus.OVERDUE):
            continue
        due_by = None
        if tenant.last_receipt_generation_date:
            due_by = tenant.last_receipt_generation_date + timedelta(days=tenant.net_terms or 0)
        pending.append({'tenant': tenant, 'due_by': due_by})
    return pending


def get_property_details(property_id: str, properties, tenants, transactions):
    """Everything the property page shows, or None if the property does not exist."""
    prop = next((p for p in properties if p.id == property_id), None)
    if prop is None:
        return None
    property_transactions = [t for t in transactions if t.property_id == property_id]
    current_tenant = next((t for t in tenants if prop.current_tenant_id and t.id == prop.current_tenant_id), None)
    return {
        'property': prop,
        'current_tenant': current_tenant,
        'transactions': sort_newest_first(property_transactions),
        'totals': get_totals(property_transactions),
        'monthly': get_monthly_summary(property_transactions, label_format='%b'),
    }


def find_dangling_references(tenants, properties, transactions) -> list:
    """
    Relations that point at documents which no longer exist. The store does not
    enforce them, so this only reports.
    """
    property_ids = {p.id for p in properties}
    tenant_ids = {t.id for t in tenants}
    dangling = []
    for tenant in tenants:
        if tenant.property_id and tenant.property_id not in property_ids:
            dangling.append(('tenants', tenant.id, 'property_id', tenant.property_id))
    for prop in properties:
        if prop.current_tenant_id and prop.current_tenant_id not in tenant_ids:
            dangling.append(('properties', prop.id, 'current_tenant_id', prop.current_tenant_id))
    for t in transactions:
        if t.property_id and t.property_id not in property_ids:
            dangling.append(('transactions', t.id, 'property_id', t.property_id))
        if t.tenant_id and t.tenant_id not in tenant_ids:
            dangling.append(('transactions', t.id, 'tenant_id', t.tenant_id))
    if dangling:
        log.warning(f"Found {len(dangling)} relations pointing at missing documents")
    return dangling
