"""
MJML Email Templates
Patient-facing appointment emails and account emails, in pt-BR
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .utils.currency import format_cents
from .utils.timezone import utc_to_local

# Doutor Agenda theme - blue/slate
THEME = {
    "primary": "#2563eb",
    "primary_dark": "#1d4ed8",
    "primary_light": "#dbeafe",
    "background": "#f8fafc",
    "card_bg": "#f8f9fa",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#16a34a",
    "warning": "#f59e0b",
    "danger": "#dc2626",
}

WEEKDAYS_PT = ["segunda-feira", "terça-feira", "quarta-feira", "quinta-feira", "sexta-feira", "sábado", "domingo"]
MONTHS_PT = [
    "janeiro",
    "fevereiro",
    "março",
    "abril",
    "maio",
    "junho",
    "julho",
    "agosto",
    "setembro",
    "outubro",
    "novembro",
    "dezembro",
]


@dataclass
class AppointmentEmailData:
    patient_name: str
    patient_email: str
    doctor_name: str
    doctor_specialty: str
    appointment_date: datetime  # naive UTC
    clinic_name: Optional[str] = None
    price_in_cents: Optional[int] = None
    confirmation_url: Optional[str] = None


def format_long_date(utc_dt: datetime) -> str:
    """e.g. "quinta-feira, 19 de outubro de 2026" in clinic local time"""
    local = utc_to_local(utc_dt)
    return f"{WEEKDAYS_PT[local.weekday()]}, {local.day:02d} de {MONTHS_PT[local.month - 1]} de {local.year}"


def format_time(utc_dt: datetime) -> str:
    return utc_to_local(utc_dt).strftime("%H:%M")


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
    accent_color: Optional[str] = None,
    clinic_name: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    accent = accent_color or THEME["primary"]
    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{accent}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    sender = clinic_name or "Doutor Agenda"

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['primary']}" padding="28px 20px">
          <mj-column>
            <mj-text align="center" font-size="24px" font-weight="700" color="#ffffff" padding="0">
              🩺 Doutor Agenda
            </mj-text>
            <mj-text align="center" font-size="14px" color="{THEME['primary_light']}" padding="6px 0 0 0">
              {sender}
            </mj-text>
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="32px 40px 40px 40px">
          <mj-column>
            <mj-text font-size="22px" font-weight="600" color="{accent}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              Este é um email automático, por favor não responda.
            </mj-text>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="12px 0 0 0">
              © Doutor Agenda. Todos os direitos reservados.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _details_table(rows: list[tuple[str, str]], background: str = THEME["card_bg"]) -> str:
    cells = "".join(
        f"""
        <tr style="border-bottom: 1px solid {THEME['border']};">
          <td style="padding: 8px 0; font-weight: 600; color: {THEME['text_muted']};">{label}</td>
          <td style="padding: 8px 0; text-align: right; color: {THEME['text_primary']};">{value}</td>
        </tr>"""
        for label, value in rows
    )
    return f"""
    <mj-table container-background-color="{background}" padding="16px" font-size="15px">
      {cells}
    </mj-table>
    """


def _notice(text: str, color: str) -> str:
    return f"""
    <mj-text container-background-color="{THEME['primary_light']}" color="{color}" padding="16px" font-size="14px">
      {text}
    </mj-text>
    """


def appointment_confirmation_template(data: AppointmentEmailData) -> str:
    """Sent when an appointment is booked"""
    rows = [
        ("👨‍⚕️ Médico:", f"Dr. {data.doctor_name}"),
        ("🏥 Especialidade:", data.doctor_specialty),
        ("📅 Data:", format_long_date(data.appointment_date)),
        ("🕐 Horário:", format_time(data.appointment_date)),
        ("👤 Paciente:", data.patient_name),
    ]
    if data.price_in_cents:
        rows.append(("💰 Valor:", format_cents(data.price_in_cents)))

    notice = _notice(
        "<strong>Importante:</strong> Chegue com 15 minutos de antecedência. "
        "Traga um documento com foto e o cartão do convênio (se aplicável).",
        THEME["primary_dark"],
    )
    content = f"""
    <mj-text>
      Olá <strong>{data.patient_name}</strong>, seu agendamento foi confirmado com sucesso!
    </mj-text>
    {_details_table(rows)}
    {notice}
    <mj-text font-size="14px" color="{THEME['text_muted']}" align="center">
      Se você não pode comparecer, entre em contato conosco o quanto antes.
    </mj-text>
    """

    return get_base_template(
        title="✅ Agendamento Confirmado!",
        preview_text=f"Consulta com Dr. {data.doctor_name} confirmada",
        content_sections=content,
        cta_url=data.confirmation_url,
        cta_label="📱 Gerenciar Agendamento",
        clinic_name=data.clinic_name,
    )


def appointment_reminder_template(data: AppointmentEmailData) -> str:
    """Sent the day before the appointment"""
    details = _details_table(
        [
            ("👨‍⚕️ Médico:", f"Dr. {data.doctor_name}"),
            ("🏥 Especialidade:", data.doctor_specialty),
            ("📅 Data:", format_long_date(data.appointment_date)),
            ("🕐 Horário:", format_time(data.appointment_date)),
        ],
        background="#fffbeb",
    )
    notice = _notice("<strong>Não se esqueça:</strong> chegue com 15 minutos de antecedência.", THEME["warning"])
    content = f"""
    <mj-text>
      Olá <strong>{data.patient_name}</strong>, você tem uma consulta marcada para <strong>amanhã</strong>!
    </mj-text>
    {details}
    {notice}
    """

    return get_base_template(
        title="⏰ Lembrete da sua consulta",
        preview_text=f"Sua consulta com Dr. {data.doctor_name} é amanhã às {format_time(data.appointment_date)}",
        content_sections=content,
        cta_url=data.confirmation_url,
        cta_label="✅ Confirmar Presença",
        accent_color=THEME["warning"],
        clinic_name=data.clinic_name,
    )


def appointment_cancellation_template(data: AppointmentEmailData) -> str:
    """Sent when an appointment is cancelled or deleted"""
    when = f"{format_long_date(data.appointment_date)} às {format_time(data.appointment_date)}"
    details = _details_table(
        [("👨‍⚕️ Médico:", f"Dr. {data.doctor_name}"), ("📅 Data que seria:", when)],
        background="#fef2f2",
    )
    notice = _notice(
        "<strong>Precisa reagendar?</strong><br/>Entre em contato conosco para marcar uma nova consulta.",
        THEME["primary_dark"],
    )
    content = f"""
    <mj-text>
      Olá <strong>{data.patient_name}</strong>, informamos que sua consulta foi cancelada.
    </mj-text>
    {details}
    {notice}
    <mj-text font-size="14px" color="{THEME['text_muted']}" align="center">
      Lamentamos qualquer inconveniente causado.
    </mj-text>
    """

    return get_base_template(
        title="❌ Consulta Cancelada",
        preview_text=f"Sua consulta com Dr. {data.doctor_name} foi cancelada",
        content_sections=content,
        cta_url=data.confirmation_url,
        cta_label="📅 Agendar Nova Consulta",
        accent_color=THEME["danger"],
        clinic_name=data.clinic_name,
    )


def appointment_update_template(data: AppointmentEmailData) -> str:
    """Sent when an appointment moves to a new date or time"""
    details = _details_table(
        [
            ("👨‍⚕️ Médico:", f"Dr. {data.doctor_name}"),
            ("🏥 Especialidade:", data.doctor_specialty),
            ("📅 Nova data:", format_long_date(data.appointment_date)),
            ("🕐 Novo horário:", format_time(data.appointment_date)),
        ],
        background="#eff6ff",
    )
    content = f"""
    <mj-text>
      Olá <strong>{data.patient_name}</strong>, sua consulta foi reagendada com sucesso!
    </mj-text>
    {details}
    """

    return get_base_template(
        title="🔄 Consulta Reagendada",
        preview_text=f"Nova data da consulta com Dr. {data.doctor_name}",
        content_sections=content,
        cta_url=data.confirmation_url,
        cta_label="📱 Gerenciar Agendamento",
        clinic_name=data.clinic_name,
    )


def password_reset_template(user_name: str, reset_link: str) -> str:
    """Password reset link"""
    content = f"""
    <mj-text>
      Olá {user_name},
    </mj-text>
    <mj-text>
      Recebemos uma solicitação para redefinir a senha da sua conta. O link abaixo é válido por 1 hora.
    </mj-text>
    <mj-text font-size="14px" color="{THEME['text_muted']}">
      Se você não solicitou a redefinição, ignore este email.
    </mj-text>
    """

    return get_base_template(
        title="Redefinição de senha",
        preview_text="Redefina a senha da sua conta",
        content_sections=content,
        cta_url=reset_link,
        cta_label="Redefinir senha",
    )
