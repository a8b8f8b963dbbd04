import io

from openpyxl import Workbook
from openpyxl.styles import Font


XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

EXPORT_HEADERS = [
    "Unique ID",
    "Name",
    "Model",
    "Serial",
    "MAC",
    "Manufacturer",
    "Ticket",
    "RFID",
    "QR Code",
    "Status",
    "Condition",
    "Store",
    "Assigned To",
    "Updated At",
    "Log Date",
    "Log Action",
    "Log User",
    "Log Ticket/Details",
]

TEMPLATE_HEADERS = [
    "Category",
    "Asset Type",
    "Product Name",
    "Model Number",
    "Serial Number",
    "MAC Address",
    "Manufacturer",
    "Ticket Number",
    "RFID",
    "QR Code",
    "Store Location",
    "Status",
]

TEMPLATE_SAMPLE = [
    "Electronics",
    "Computer",
    "Laptop X1",
    "M-12345",
    "SN-54321",
    "00:11:22:33:44:55",
    "Dell",
    "T-1001",
    "RF-999",
    "QR-888",
    "Main Store",
    "New",
]


def _workbook_bytes(workbook) -> io.BytesIO:
    output = io.BytesIO()
    workbook.save(output)
    output.seek(0)
    return output


def _write_header(sheet, headers, width=20):
    sheet.append(headers)
    for cell in sheet[1]:
        cell.font = Font(bold=True)
        sheet.column_dimensions[cell.column_letter].width = width


def _assignee(asset):
    if asset.assigned_to is not None:
        return asset.assigned_to.name
    if asset.assigned_to_external_name:
        return f"{asset.assigned_to_external_name} (External)"
    return "N/A"


def export_assets_workbook(assets) -> io.BytesIO:
    """One row per history entry, newest first; assets without history get one row."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Assets"
    _write_header(sheet, EXPORT_HEADERS)

    for asset in assets:
        base = [
            asset.unique_id or "",
            asset.name,
            asset.model_number or "",
            asset.serial_number or "",
            asset.mac_address or "",
            asset.manufacturer or "",
            asset.ticket_number or "",
            asset.rfid or "",
            asset.qr_code or "",
            asset.status,
            asset.condition or "",
            asset.store.name if asset.store else "N/A",
            _assignee(asset),
            asset.updated_at,
        ]
        history = sorted(asset.history, key=lambda h: (h.date, h.id), reverse=True)
        if not history:
            sheet.append(base + ["", "No History", "", ""])
            continue
        for entry in history:
            sheet.append(base + [
                entry.date,
                entry.action,
                entry.user or "",
                entry.ticket_number or entry.details or "",
            ])

    return _workbook_bytes(workbook)


def import_template_workbook() -> io.BytesIO:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Template"
    _write_header(sheet, TEMPLATE_HEADERS)
    sheet.append(TEMPLATE_SAMPLE)
    return _workbook_bytes(workbook)


def rows_workbook(title, headers, rows) -> io.BytesIO:
    """Plain sheet from a header list and row iterables."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title
    _write_header(sheet, headers)
    for row in rows:
        sheet.append(list(row))
    return _workbook_bytes(workbook)
