from fpdf import FPDF, XPos, YPos
import base64

from constants import CURRENCY_LABEL, DEFAULT_BUSINESS_NAME
from utils.date_helper import utc_now


def _latin1(text) -> str:
    # Core PDF fonts only cover latin-1
    return str(text).encode("latin-1", "replace").decode("latin-1")


def _money(amount) -> str:
    return f"{CURRENCY_LABEL} {amount:,.2f}"


def _line(pdf, text, w=0, h=8, **kwargs):
    pdf.cell(w, h, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT, **kwargs)


def generate_rent_receipt_pdf(tenant, month: str, payment_date, receipt_number: str, profile=None) -> bytes:
    """
    Generates a rent receipt PDF for one month of a tenant's rent.
    """
    business_name = (profile and profile.business_name) or DEFAULT_BUSINESS_NAME

    pdf = FPDF()
    pdf.add_page()

    # Header
    pdf.set_font("helvetica", "B", 22)
    _line(pdf, business_name, h=10, align="C")
    pdf.set_font("helvetica", size=10)
    if profile and profile.owner_name:
        _line(pdf, profile.owner_name, h=5, align="C")
    if profile and profile.business_address:
        _line(pdf, profile.business_address, h=5, align="C")
    pdf.ln(6)

    pdf.set_font("helvetica", "B", 16)
    _line(pdf, "Rent Receipt", h=10, align="C")
    pdf.ln(4)

    # Receipt number and date
    pdf.set_font("helvetica", size=12)
    pdf.cell(95, 8, _latin1(f"Receipt #: {receipt_number}"))
    _line(pdf, f"Date: {payment_date.strftime('%d %B %Y')}", align="R")
    pdf.line(pdf.l_margin, pdf.get_y() + 2, pdf.w - pdf.r_margin, pdf.get_y() + 2)
    pdf.ln(6)

    # Billed to
    pdf.set_font("helvetica", "B", 12)
    _line(pdf, "BILLED TO:")
    pdf.set_font("helvetica", size=12)
    _line(pdf, tenant.name, h=6)
    if tenant.property_name:
        _line(pdf, tenant.property_name, h=6)
    if tenant.property_address:
        _line(pdf, tenant.property_address, h=6)
    pdf.ln(8)

    # Items table
    pdf.set_font("helvetica", "B", 12)
    pdf.set_fill_color(33, 150, 243)
    pdf.set_text_color(255, 255, 255)
    pdf.cell(130, 10, "Description", border=1, fill=True)
    _line(pdf, "Amount", w=0, h=10, border=1, align="R", fill=True)
    pdf.set_text_color(0, 0, 0)

    pdf.set_font("helvetica", size=12)
    items = [
        (f"Rent for the month of {month}", tenant.rent_amount),
        ("Maintenance Charges", 0.0),
    ]
    for description, amount in items:
        pdf.cell(130, 10, _latin1(description), border=1)
        _line(pdf, _money(amount), w=0, h=10, border=1, align="R")

    # Total
    pdf.ln(4)
    pdf.set_font("helvetica", "B", 14)
    pdf.cell(130, 10, "Total Amount:", align="R")
    _line(pdf, _money(tenant.rent_amount), w=0, h=10, align="R")
    pdf.ln(6)

    # Payment instructions
    pdf.set_font("helvetica", "B", 12)
    _line(pdf, "Notes / Payment Instructions:")
    pdf.set_font("helvetica", size=10)
    _line(pdf, "Thank you for your timely payment.", h=5)
    if profile and profile.upi_id:
        _line(pdf, f"You can pay via UPI to: {profile.upi_id}", h=5)
    if profile and profile.bank_details:
        _line(pdf, "Bank Details:", h=5)
        pdf.multi_cell(0, 5, _latin1(profile.bank_details), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    # Footer
    pdf.set_y(-35)
    pdf.line(pdf.l_margin, pdf.get_y(), pdf.w - pdf.r_margin, pdf.get_y())
    pdf.ln(3)
    pdf.set_font("helvetica", size=10)
    contact_info = " | ".join(filter(None, [
        profile and profile.business_phone,
        profile and profile.business_email,
    ]))
    if contact_info:
        _line(pdf, contact_info, h=5, align="C")
    _line(pdf, "This is a computer-generated receipt and does not require a signature.", h=5, align="C")

    return bytes(pdf.output())


def generate_pending_receipt_pdf(tenant, prop=None, profile=None) -> bytes:
    """
    Generates the "pending payment" notice for a tenant who has not paid yet.
    """
    pdf = FPDF(format="A5")
    pdf.add_page()

    pdf.set_font("helvetica", "B", 16)
    pdf.set_fill_color(30, 136, 229)
    pdf.set_text_color(255, 255, 255)
    _line(pdf, "RENT RECEIPT (Pending Payment)", h=12, align="C", fill=True)
    pdf.set_text_color(0, 0, 0)
    pdf.ln(4)

    sections = [
        ("Property Owner", [
            ("Name", (profile and (profile.owner_name or profile.business_name)) or DEFAULT_BUSINESS_NAME),
            ("Address", (profile and profile.business_address) or ""),
        ]),
        ("Tenant Details", [
            ("Name", tenant.name),
            ("Property", tenant.property_name or (prop and prop.name) or ""),
            ("Type", prop.type.value if prop else ""),
            ("Area", (prop and prop.area_size) or ""),
        ]),
        ("Payment Details", [
            ("Month", tenant.due_date.strftime("%B %Y")),
            ("Rent Amount", _money(tenant.rent_amount)),
            ("Status", "Pending"),
            ("Due Date", tenant.due_date.strftime("%d-%b-%Y")),
            ("Payment Mode", "Not Paid"),
        ]),
    ]
    for title, rows in sections:
        pdf.set_font("helvetica", "B", 12)
        _line(pdf, title)
        pdf.set_font("helvetica", size=10)
        for label, value in rows:
            if not value:
                continue
            pdf.cell(35, 6, _latin1(f"{label}:"))
            _line(pdf, value, h=6)
        pdf.ln(3)

    pdf.set_font("helvetica", "B", 10)
    pdf.set_text_color(211, 47, 47)
    pdf.multi_cell(0, 6, "Please make the payment as soon as possible to avoid any extra charges.",
                   new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_text_color(0, 0, 0)

    if tenant.notes:
        pdf.ln(2)
        pdf.set_font("helvetica", size=10)
        pdf.multi_cell(0, 6, _latin1(f"Remarks: {tenant.notes}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    pdf.ln(6)
    _line(pdf, "Owner Signature: _____________________", h=6)
    _line(pdf, f"Date: {utc_now().strftime('%d-%b-%Y')}", h=6)

    pdf.ln(4)
    pdf.set_font("helvetica", "I", 8)
    _line(pdf, "Auto-generated via RentBox", h=5, align="C")

    return bytes(pdf.output())


def encode_pdf_base64(pdf_bytes: bytes) -> str:
    return base64.b64encode(pdf_bytes).decode("ascii")
