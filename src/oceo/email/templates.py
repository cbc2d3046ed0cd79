"""
Email templates for Oceo Luxe.

All templates use inline CSS for maximum email client compatibility.
Branded with a warm ivory background and blush (#CDA7B2) accents.

Each template function returns (subject, html_body, text_body).
"""

from __future__ import annotations

from html import escape

# Color constants
BG_IVORY = "#FAF8F5"
BG_CARD = "#FFFFFF"
BG_SURFACE = "#F5F3F0"
BLUSH = "#CDA7B2"
CHARCOAL = "#3B3937"
TAUPE = "#967F71"
BORDER = "#EDEBE8"

SUPPORT_EMAIL = "kerrib@oceoluxe.com"

_CURRENCY_SYMBOLS = {"usd": "$", "eur": "€", "gbp": "£"}


def format_price(cents: int, currency: str = "usd") -> str:
    """Format an amount in minor units, e.g. 4900 usd -> $49.00."""
    symbol = _CURRENCY_SYMBOLS.get(currency.lower())
    amount = f"{cents / 100:,.2f}"
    if symbol:
        return f"{symbol}{amount}"
    return f"{amount} {currency.upper()}"


def _interval_label(billing_interval: str | None) -> str:
    return "year" if billing_interval == "year" else "month"


def _base_layout(content: str, app_name: str = "Oceo Luxe") -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{app_name}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_IVORY}; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: {BG_IVORY};">
        <tr>
            <td align="center" style="padding: 40px 20px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="600" style="max-width: 600px; width: 100%;">
                    <tr>
                        <td align="center" style="padding-bottom: 32px;">
                            <span style="font-size: 28px; font-weight: 300; letter-spacing: 2px; color: {BLUSH};">OCEOLUXE</span>
                        </td>
                    </tr>
                    <tr>
                        <td style="background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 12px; padding: 40px 32px;">
                            {content}
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding-top: 32px;">
                            <p style="color: {TAUPE}; font-size: 12px; line-height: 1.5; margin: 0;">
                                Questions? Reply to this email or contact us at
                                <a href="mailto:{SUPPORT_EMAIL}" style="color: {BLUSH};">{SUPPORT_EMAIL}</a>.<br>
                                This email was sent by {app_name}.
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def _button(url: str, label: str, color: str = BLUSH) -> str:
    """Render a CTA button."""
    return f"""\
<table role="presentation" cellspacing="0" cellpadding="0" border="0" style="margin: 28px auto;">
    <tr>
        <td align="center" style="background-color: {color}; border-radius: 8px;">
            <a href="{url}" target="_blank" style="display: inline-block; padding: 14px 32px; color: #FFFFFF; font-size: 16px; font-weight: 500; text-decoration: none; border-radius: 8px;">
                {label}
            </a>
        </td>
    </tr>
</table>"""


def _heading(text: str) -> str:
    return f'<h1 style="color: {CHARCOAL}; font-size: 24px; font-weight: 500; margin: 0 0 16px 0; text-align: center;">{text}</h1>'


def _paragraph(text: str, color: str = CHARCOAL) -> str:
    return f'<p style="color: {color}; font-size: 16px; line-height: 1.6; margin: 0 0 16px 0;">{text}</p>'


def _panel(inner: str) -> str:
    return f'<div style="background-color: {BG_SURFACE}; padding: 20px; border-radius: 8px; margin: 24px 0;">{inner}</div>'


def _greeting(name: str | None) -> str:
    return f"Hi {name}," if name else "Hi there,"


def _details_rows(rows: list[tuple[str, str | None]]) -> str:
    return "".join(
        f'<p style="margin: 0 0 8px 0; color: {CHARCOAL};"><strong>{label}:</strong> {escape(value or "Not provided")}</p>'
        for label, value in rows
    )


def purchase_confirmation(
    customer_name: str | None,
    product_name: str,
    amount_cents: int,
    currency: str,
    thank_you_url: str,
    delivery_type: str = "download",
    product_description: str | None = None,
    download_url: str | None = None,
    access_instructions: str | None = None,
) -> tuple[str, str, str]:
    """
    Order confirmation with delivery details for a one-time purchase.

    Delivery depends on delivery_type: a download button, access
    instructions, or a template link for email delivery.

    Returns:
        (subject, html_body, text_body)
    """
    subject = f"Your Oceoluxe order: {product_name}"
    price = format_price(amount_cents, currency)

    delivery_html = ""
    delivery_text = ""
    if delivery_type in ("download", "email") and download_url:
        label = "Download Now" if delivery_type == "download" else "Get Your Template"
        delivery_html = (
            _paragraph("Your product is ready. Click the button below to get it.")
            + _button(download_url, label)
        )
        delivery_text = f"Get your product here:\n{download_url}\n\n"
    elif access_instructions:
        delivery_html = _panel(
            f'<p style="white-space: pre-wrap; margin: 0; color: {CHARCOAL};">{escape(access_instructions)}</p>'
        )
        delivery_text = f"Access instructions:\n{access_instructions}\n\n"

    description_html = (
        f'<p style="color: {TAUPE}; margin: 8px 0 0 0;">{escape(product_description)}</p>'
        if product_description
        else ""
    )
    summary_html = _panel(
        f'<p style="font-size: 20px; color: {BLUSH}; margin: 0;">{escape(product_name)}</p>'
        f"{description_html}"
        f'<p style="font-size: 18px; color: {CHARCOAL}; margin: 16px 0 0 0;">{price}</p>'
    )
    greeting = _greeting(escape(customer_name) if customer_name else None)
    content = f"""\
{_heading("Thank You for Your Purchase!")}
{_paragraph(greeting)}
{_paragraph("Thank you for your order! We're thrilled to have you.")}
{summary_html}
{delivery_html}
{_button(thank_you_url, "View Your Order", color=CHARCOAL)}"""
    html_body = _base_layout(content)
    text_body = (
        f"{_greeting(customer_name)}\n\n"
        f"Thank you for your order of {product_name} ({price}).\n\n"
        f"{delivery_text}"
        f"View your order: {thank_you_url}\n\n"
        f"-- Oceo Luxe"
    )
    return subject, html_body, text_body


def subscription_welcome(
    customer_name: str | None,
    product_name: str,
    amount_cents: int,
    currency: str,
    billing_interval: str | None = "month",
    access_instructions: str | None = None,
) -> tuple[str, str, str]:
    """
    Welcome email for the first paid invoice of a subscription.

    Returns:
        (subject, html_body, text_body)
    """
    subject = f"Welcome to {product_name}!"
    billing = f"{format_price(amount_cents, currency)}/{_interval_label(billing_interval)}"
    instructions_html = ""
    instructions_text = ""
    if access_instructions:
        instructions_html = _panel(
            f'<h3 style="margin: 0 0 8px 0; color: {CHARCOAL};">Getting Started</h3>'
            f'<p style="white-space: pre-wrap; margin: 0; color: {CHARCOAL};">{escape(access_instructions)}</p>'
        )
        instructions_text = f"Getting started:\n{access_instructions}\n\n"

    active_html = _paragraph(f"Your subscription to <strong>{escape(product_name)}</strong> is now active!")
    billing_html = _panel(f'<p style="margin: 0; color: {CHARCOAL};"><strong>Billing:</strong> {billing}</p>')
    greeting = _greeting(escape(customer_name) if customer_name else None)
    content = f"""\
{_heading("Welcome!")}
{_paragraph(greeting)}
{active_html}
{billing_html}
{instructions_html}
{_paragraph("You can manage your subscription at any time from your account.", color=TAUPE)}"""
    html_body = _base_layout(content)
    text_body = (
        f"{_greeting(customer_name)}\n\n"
        f"Your subscription to {product_name} is now active.\n"
        f"Billing: {billing}\n\n"
        f"{instructions_text}"
        f"-- Oceo Luxe"
    )
    return subject, html_body, text_body


def studio_welcome(name: str | None, dashboard_url: str) -> tuple[str, str, str]:
    """
    Welcome email for a new Studio Systems member.

    Returns:
        (subject, html_body, text_body)
    """
    subject = "Welcome to Studio Systems - Let's Get Started!"
    greeting = f"Dear {name}," if name else "Hello,"
    next_steps_html = _panel(
        f'<p style="margin: 0 0 12px 0; font-weight: 600; color: {CHARCOAL};">Here is what to do next:</p>'
        f'<p style="margin: 0 0 8px 0; color: {TAUPE};">Browse the courses and start learning</p>'
        f'<p style="margin: 0; color: {TAUPE};">Download templates from the Resources section</p>'
    )
    intro_html = _paragraph(
        "You're officially part of our community of fashion designers and visionaries.", color=TAUPE
    )
    content = f"""\
{_heading("Welcome to Studio Systems")}
{_paragraph(escape(greeting))}
{intro_html}
{next_steps_html}
{_button(dashboard_url, "Go to Your Dashboard", color=CHARCOAL)}"""
    html_body = _base_layout(content)
    text_body = (
        f"{greeting}\n\n"
        f"Welcome to Studio Systems! Your membership is active.\n\n"
        f"Go to your dashboard: {dashboard_url}\n\n"
        f"-- Oceo Luxe"
    )
    return subject, html_body, text_body


def free_download(name: str | None, product_name: str, download_url: str) -> tuple[str, str, str]:
    """
    Delivery email for a claimed free product.

    Returns:
        (subject, html_body, text_body)
    """
    subject = f"Your Free Download: {product_name}"
    thanks_html = _paragraph(
        f"Thank you for downloading <strong>{escape(product_name)}</strong>! "
        "Click the button below to access your free resource."
    )
    content = f"""\
{_heading("Your Download is Ready!")}
{_paragraph(_greeting(escape(name) if name else None))}
{thanks_html}
{_button(download_url, "Access Your Download")}
<hr style="border: none; border-top: 1px solid {BORDER}; margin: 24px 0;">
<p style="color: {TAUPE}; font-size: 12px; line-height: 1.5; margin: 0;">
    If the button doesn't work, copy and paste this URL:<br>
    <a href="{download_url}" style="color: {BLUSH}; word-break: break-all;">{download_url}</a>
</p>"""
    html_body = _base_layout(content)
    text_body = (
        f"{_greeting(name)}\n\n"
        f"Thank you for downloading {product_name}! Get it here:\n\n{download_url}\n\n"
        f"-- Oceo Luxe"
    )
    return subject, html_body, text_body


def waitlist_admin_notification(name: str | None, email: str, dashboard_url: str) -> tuple[str, str, str]:
    """
    Admin alert for a new Studio Systems waitlist signup.

    Returns:
        (subject, html_body, text_body)
    """
    subject = "New Studio Systems Waitlist Signup!"
    content = f"""\
{_heading("New Waitlist Signup")}
{_paragraph("Someone just joined the Studio Systems waitlist!")}
{_panel(_details_rows([("Name", name), ("Email", email)]))}
{_button(dashboard_url, "View Waitlist", color=CHARCOAL)}"""
    html_body = _base_layout(content)
    text_body = (
        f"New Studio Systems waitlist signup\n\n"
        f"Name: {name or 'Not provided'}\n"
        f"Email: {email}\n\n"
        f"View all signups: {dashboard_url}"
    )
    return subject, html_body, text_body


_APPLICATION_LABELS = {
    "coaching": "Coaching",
    "entrepreneur-circle": "Entrepreneur Circle",
}


def new_application_notification(
    application_type: str,
    name: str,
    email: str,
    details: dict[str, str | None],
    dashboard_url: str,
) -> tuple[str, str, str]:
    """
    Admin alert for a submitted coaching or circle application.

    Args:
        details: Label -> answer pairs in display order.

    Returns:
        (subject, html_body, text_body)
    """
    label = _APPLICATION_LABELS.get(application_type, application_type)
    subject = f"New {label} Application: {name}"
    rows = [("Name", name), ("Email", email), *details.items()]
    heading_html = _heading(f"New {escape(label)} Application")
    content = f"""\
{heading_html}
{_panel(_details_rows(rows))}
{_button(dashboard_url, "Review Applications", color=CHARCOAL)}"""
    html_body = _base_layout(content)
    text_body = f"New {label} application\n\n" + "\n".join(
        f"{key}: {value or 'Not provided'}" for key, value in rows
    ) + f"\n\nReview: {dashboard_url}"
    return subject, html_body, text_body
