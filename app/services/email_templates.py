"""
Notification email templates for the public forms.

Rendering is literal ``{{key}}`` substitution: no escaping, no conditionals,
no loops. Rendered HTML is only safe once EmailService has passed it through
``sanitize_html``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class RenderedTemplate:
    html: str
    text: str


@dataclass(frozen=True)
class EmailTemplate:
    """An HTML/text source pair with ``{{name}}`` placeholders."""

    html_source: str
    text_source: str

    def render(self, data: Mapping[str, Any]) -> RenderedTemplate:
        html = self.html_source
        text = self.text_source
        for key, value in data.items():
            placeholder = "{{" + key + "}}"
            display = "" if value is None else str(value)
            html = html.replace(placeholder, display)
            text = text.replace(placeholder, display)
        return RenderedTemplate(html=html, text=text)


_HEADER_STYLE = (
    "background-color: #0A2240; color: #ffffff; padding: 20px; "
    "text-align: center; border-radius: 5px 5px 0 0"
)
_CONTENT_STYLE = (
    "padding: 20px; border: 1px solid #dddddd; border-top: none; "
    "border-radius: 0 0 5px 5px; font-family: Arial, sans-serif; line-height: 1.6; color: #333333"
)
_LABEL_STYLE = "font-weight: bold; margin-bottom: 5px"
_VALUE_STYLE = "margin-bottom: 15px"
_METADATA_STYLE = (
    "margin-top: 30px; padding-top: 15px; border-top: 1px solid #eeeeee; "
    "font-size: 12px; color: #666666"
)
_FOOTER_STYLE = "margin-top: 20px; font-size: 12px; color: #666666; text-align: center"


def _html_document(title: str, fields: list[tuple[str, str]], footer: str) -> str:
    rows = "\n".join(
        f'      <div class="field">\n'
        f'        <div class="label" style="{_LABEL_STYLE}">{label}:</div>\n'
        f'        <div class="value" style="{_VALUE_STYLE}">{{{{{key}}}}}</div>\n'
        f"      </div>"
        for label, key in fields
    )
    return f"""
<div style="max-width: 600px; margin: 0 auto; padding: 20px">
  <div class="header" style="{_HEADER_STYLE}">
    <h1>{title}</h1>
  </div>
  <div class="content" style="{_CONTENT_STYLE}">
{rows}
    <div class="metadata" style="{_METADATA_STYLE}">
      <p>Submission Time: {{{{timestamp}}}}</p>
      <p>IP Address: {{{{ip}}}}</p>
      <p>User Agent: {{{{userAgent}}}}</p>
    </div>
  </div>
  <div class="footer" style="{_FOOTER_STYLE}">
    <p>{footer}</p>
  </div>
</div>
"""


def _text_document(title: str, fields: list[tuple[str, str]], footer: str) -> str:
    lines = [title.upper(), ""]
    lines += [f"{label}: {{{{{key}}}}}" for label, key in fields if key != "message"]
    if any(key == "message" for _, key in fields):
        lines += ["", "Message:", "{{message}}"]
    lines += [
        "",
        "---",
        "Submission Time: {{timestamp}}",
        "IP Address: {{ip}}",
        "User Agent: {{userAgent}}",
        "",
        footer,
    ]
    return "\n".join(lines) + "\n"


def _build(title: str, fields: list[tuple[str, str]], source: str) -> EmailTemplate:
    footer = f"This is an automated message from the Carlora website {source}."
    return EmailTemplate(
        html_source=_html_document(title, fields, footer),
        text_source=_text_document(title, fields, footer),
    )


contact_form_template = _build(
    "New Contact Form Submission",
    [("Name", "name"), ("Email", "email"), ("Message", "message")],
    "contact form",
)

consultation_booking_template = _build(
    "New Consultation Request",
    [
        ("Name", "name"),
        ("Email", "email"),
        ("Company", "company"),
        ("Industry", "industry"),
        ("Company Size", "companySize"),
        ("Consultation Type", "consultationType"),
        ("Preferred Date", "preferredDate"),
        ("Message", "message"),
    ],
    "consultation booking form",
)

application_form_template = _build(
    "New Job Application",
    [
        ("Name", "name"),
        ("Email", "email"),
        ("Phone", "phone"),
        ("Message", "message"),
    ],
    "careers application form",
)
