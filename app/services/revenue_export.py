"""
Revenue report exports
Renders the revenue report bundle as a PDF (reportlab) or an Excel workbook (pandas + openpyxl)
"""

import io
import logging
from datetime import date, datetime

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..domain.billing.reconciliation import PAYMENT_METHOD_LABELS
from ..utils.currency import cents_to_reais, format_cents
from ..utils.timezone import now_local

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

SUMMARY_HEAD_COLOR = colors.HexColor("#22c55e")
DOCTORS_HEAD_COLOR = colors.HexColor("#8b5cf6")
METHODS_HEAD_COLOR = colors.HexColor("#3b82f6")


def report_filename(extension: str, generated_at: datetime = None) -> str:
    """relatorio-faturamento-YYYY-mm-dd-HHMM.<ext>, stamped in clinic local time"""
    stamp = (generated_at or now_local()).strftime("%Y-%m-%d-%H%M")
    return f"relatorio-faturamento-{stamp}.{extension}"


def _br_date(value: str) -> str:
    return date.fromisoformat(value[:10]).strftime("%d/%m/%Y")


def _br_datetime(value: str) -> str:
    return datetime.fromisoformat(value).strftime("%d/%m/%Y %H:%M")


def _method_label(method: str) -> str:
    return PAYMENT_METHOD_LABELS.get(method, method)


def _share(amount: int, total: int, digits: int) -> str:
    if not total:
        return f"{0:.{digits}f}%"
    return f"{amount / total * 100:.{digits}f}%"


def _summary_rows(summary: dict) -> list[list]:
    return [
        ["Faturamento Total", format_cents(summary["totalRevenue"])],
        ["Total de Pagamentos", str(summary["totalPayments"])],
        ["Pacientes Atendidos", str(summary["totalPatients"])],
        ["Médicos Ativos", str(summary["totalDoctors"])],
        ["Ticket Médio", format_cents(summary["averageTransaction"])],
    ]


# ============================================================================
# PDF
# ============================================================================


class RevenuePDFGenerator:
    """Generate the revenue report PDF"""

    def __init__(self, report: dict, clinic_name: str = "Clínica"):
        self.report = report
        self.clinic_name = clinic_name or "Clínica"
        self.page_width, self.page_height = A4
        self.margin = 0.75 * inch
        self.dark_gray = colors.HexColor("#1e293b")
        self.light_gray = colors.HexColor("#f1f5f9")
        self.generated_at = now_local()

    def _table(self, head: list[str], body: list[list], head_color, col_widths=None) -> Table:
        table = Table([head] + body, colWidths=col_widths, repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), head_color),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 10),
                    ("FONT", (0, 1), (-1, -1), "Helvetica", 9),
                    ("TEXTCOLOR", (0, 1), (-1, -1), self.dark_gray),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, self.light_gray]),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                    ("TOPPADDING", (0, 0), (-1, -1), 6),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
                ]
            )
        )
        return table

    def generate(self) -> bytes:
        """Generate PDF and return bytes"""
        filters = self.report["filters"]
        summary = self.report["summary"]
        logger.info(f"📄 Generating revenue PDF for {self.clinic_name}")

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=self.margin,
            leftMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title="Relatório de Faturamento",
        )

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "ReportTitle", parent=styles["Heading1"], fontSize=20, alignment=1, spaceAfter=6
        )
        subtitle_style = ParagraphStyle(
            "ReportSubtitle", parent=styles["Normal"], fontSize=12, alignment=1, textColor=self.dark_gray
        )
        heading_style = ParagraphStyle(
            "ReportHeading", parent=styles["Heading2"], fontSize=14, spaceBefore=16, spaceAfter=8
        )

        story = [
            Paragraph("Relatório de Faturamento", title_style),
            Paragraph(
                f"{self.clinic_name} - {_br_date(filters['startDate'])} a {_br_date(filters['endDate'])}",
                subtitle_style,
            ),
            Spacer(1, 0.3 * inch),
            Paragraph("Resumo Executivo", heading_style),
            self._table(["Métrica", "Valor"], _summary_rows(summary), SUMMARY_HEAD_COLOR, [3 * inch, 3 * inch]),
        ]

        doctors = self.report["topDoctors"]
        if doctors:
            story.append(Paragraph("Top Médicos por Faturamento", heading_style))
            rows = [
                [str(i + 1), d["name"], d["specialty"], format_cents(d["revenue"]), str(d["appointments"])]
                for i, d in enumerate(doctors[:10])
            ]
            story.append(
                self._table(["#", "Médico", "Especialidade", "Faturamento", "Consultas"], rows, DOCTORS_HEAD_COLOR)
            )

        methods = self.report["paymentMethods"]
        if methods:
            story.append(Paragraph("Faturamento por Método de Pagamento", heading_style))
            rows = [
                [
                    _method_label(m["paymentMethod"]),
                    format_cents(m["totalAmount"]),
                    str(m["transactionCount"]),
                    _share(m["totalAmount"], summary["totalRevenue"], 1),
                ]
                for m in methods
            ]
            story.append(
                self._table(["Método", "Valor Total", "Transações", "% do Total"], rows, METHODS_HEAD_COLOR)
            )

        doc.build(story, onFirstPage=self._add_footer, onLaterPages=self._add_footer)

        pdf_bytes = buffer.getvalue()
        buffer.close()

        logger.info(f"✅ Generated revenue PDF ({len(pdf_bytes)} bytes)")
        return pdf_bytes

    def _add_footer(self, canvas_obj, doc):
        text = f"Gerado em {self.generated_at.strftime('%d/%m/%Y às %H:%M')} - Página {canvas_obj.getPageNumber()}"
        canvas_obj.setFont("Helvetica", 8)
        canvas_obj.setFillColor(colors.grey)
        canvas_obj.drawCentredString(self.page_width / 2, self.margin / 2, text)


def export_revenue_pdf(report: dict, clinic_name: str = "Clínica") -> bytes:
    return RevenuePDFGenerator(report, clinic_name).generate()


# ============================================================================
# EXCEL
# ============================================================================


def build_revenue_sheets(report: dict, clinic_name: str = "Clínica") -> dict[str, pd.DataFrame]:
    """
    One DataFrame per workbook sheet, in sheet order.

    The summary sheet is always present; the others only when they have rows.
    Money columns hold reais so spreadsheet formulas work on them.
    """
    filters = report["filters"]
    summary = report["summary"]

    sheets = {
        "Resumo": pd.DataFrame(
            [
                ["Relatório de Faturamento", ""],
                [clinic_name or "Clínica", ""],
                [f"Período: {_br_date(filters['startDate'])} a {_br_date(filters['endDate'])}", ""],
                ["", ""],
                ["Métrica", "Valor"],
                ["Faturamento Total", format_cents(summary["totalRevenue"])],
                ["Total de Pagamentos", summary["totalPayments"]],
                ["Pacientes Atendidos", summary["totalPatients"]],
                ["Médicos Ativos", summary["totalDoctors"]],
                ["Ticket Médio", format_cents(summary["averageTransaction"])],
            ]
        )
    }

    if report["timeSeries"]:
        sheets["Evolução Temporal"] = pd.DataFrame(
            {
                "Data": [_br_date(p["date"]) for p in report["timeSeries"]],
                "Faturamento": [cents_to_reais(p["totalRevenue"]) for p in report["timeSeries"]],
                "Nº Transações": [p["transactionCount"] for p in report["timeSeries"]],
            }
        )

    if report["topDoctors"]:
        doctors = pd.DataFrame(report["topDoctors"])
        sheets["Top Médicos"] = pd.DataFrame(
            {
                "Posição": range(1, len(doctors) + 1),
                "Médico": doctors["name"],
                "Especialidade": doctors["specialty"],
                "Faturamento": doctors["revenue"] / 100,
                "Consultas": doctors["appointments"],
                "Ticket Médio": [
                    cents_to_reais(r / a) if a else 0 for r, a in zip(doctors["revenue"], doctors["appointments"])
                ],
            }
        )

    if report["paymentMethods"]:
        methods = pd.DataFrame(report["paymentMethods"])
        sheets["Métodos de Pagamento"] = pd.DataFrame(
            {
                "Método de Pagamento": methods["paymentMethod"].map(_method_label),
                "Valor Total": methods["totalAmount"] / 100,
                "Nº Transações": methods["transactionCount"],
                "% do Total": [_share(a, summary["totalRevenue"], 2) for a in methods["totalAmount"]],
            }
        )

    if report["recentTransactions"]:
        sheets["Transações"] = pd.DataFrame(
            {
                "Data Pagamento": [_br_datetime(t["paymentDate"]) for t in report["recentTransactions"]],
                "Paciente": [t["patientName"] for t in report["recentTransactions"]],
                "Médico": [t["doctorName"] for t in report["recentTransactions"]],
                "Método": [_method_label(t["paymentMethod"]) for t in report["recentTransactions"]],
                "Valor": [cents_to_reais(t["amount"]) for t in report["recentTransactions"]],
                "Data Consulta": [_br_datetime(t["appointmentDate"]) for t in report["recentTransactions"]],
            }
        )

    return sheets


def export_revenue_xlsx(report: dict, clinic_name: str = "Clínica") -> bytes:
    """Write the report workbook and return its bytes"""
    sheets = build_revenue_sheets(report, clinic_name)
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, frame in sheets.items():
            frame.to_excel(writer, sheet_name=name, index=False, header=name != "Resumo")
    data = buffer.getvalue()
    logger.info(f"✅ Generated revenue workbook with {len(sheets)} sheets ({len(data)} bytes)")
    return data
