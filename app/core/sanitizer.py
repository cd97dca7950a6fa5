import re

import bleach
from bleach.css_sanitizer import CSSSanitizer
from bs4 import BeautifulSoup

# Structural and text tags only
ALLOWED_TAGS = frozenset({
    "a", "b", "br", "div", "em", "h1", "h2", "h3", "h4", "h5", "h6",
    "i", "li", "ol", "p", "span", "strong", "table", "tbody", "td",
    "tfoot", "th", "thead", "tr", "ul",
})
ALLOWED_ATTRIBUTES = {"*": ["href", "target", "rel", "style", "class"]}
ALLOWED_PROTOCOLS = frozenset({
    "http", "https", "ftp", "ftps", "mailto", "tel", "callto", "sms", "maps",
})

# Removed together with everything inside them
FORBIDDEN_TAGS = ("script", "style", "iframe", "form", "input", "button")

_css_sanitizer = CSSSanitizer(
    allowed_css_properties=[
        "color", "background-color", "background",
        "font-family", "font-size", "font-weight", "font-style",
        "text-align", "text-decoration", "text-transform",
        "margin", "margin-top", "margin-bottom", "margin-left", "margin-right",
        "padding", "padding-top", "padding-bottom", "padding-left", "padding-right",
        "border", "border-top", "border-bottom", "border-left", "border-right",
        "border-color", "border-style", "border-width", "border-radius",
        "width", "max-width", "line-height", "vertical-align",
    ],
    allowed_svg_properties=[],
)

_cleaner = bleach.Cleaner(
    tags=ALLOWED_TAGS,
    attributes=ALLOWED_ATTRIBUTES,
    protocols=ALLOWED_PROTOCOLS,
    css_sanitizer=_css_sanitizer,
    strip=True,  # Strip disallowed tags instead of escaping
    strip_comments=True,
)


def _drop_forbidden_elements(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    forbidden = soup.find_all(FORBIDDEN_TAGS)
    if not forbidden:
        return html
    for element in forbidden:
        # Nested matches go away with their ancestor
        if not element.decomposed:
            element.decompose()
    return str(soup)


def sanitize_html(html: str) -> str:
    """Whitelist-clean HTML that is about to be emailed.

    Disallowed tags are stripped (their text is kept), except for active or
    interactive elements which are dropped with their content. Running the
    function on its own output returns the same string.
    """
    if not html:
        return ""
    return _cleaner.clean(_drop_forbidden_elements(html))


def redact_pii(message: str) -> str:
    """Redact personally identifiable information from log messages.

    Sanitizes emails, IPs, phone numbers, API keys, and passwords before
    anything reaches a log sink.
    """
    if not isinstance(message, str):
        return str(message)

    # Emails: user@example.com -> u***@example.com
    message = re.sub(
        r"[\w.+-]+@[\w.-]+\.\w+",
        lambda m: m.group()[0] + "***@" + m.group().split("@")[1],
        message,
    )

    # IPs (IPv4): 192.168.1.100 -> 192.168.1.***
    message = re.sub(
        r"\b(\d{1,3}\.\d{1,3}\.\d{1,3}\.)\d{1,3}\b", r"\1***", message
    )

    # E.164-style phone numbers: +14155550123 -> [PHONE_REDACTED]
    message = re.sub(r"\+\d{8,15}\b", "[PHONE_REDACTED]", message)

    # API Keys: long hex strings (32+ chars)
    message = re.sub(r"\b[a-fA-F0-9]{32,}\b", "[API_KEY_REDACTED]", message)

    # Password values in common patterns
    message = re.sub(
        r'(password|passwd|pwd|secret)["\']?\s*[:=]\s*["\']?[^"\'&\s]+',
        r"\1=[REDACTED]",
        message,
        flags=re.IGNORECASE,
    )

    return message
