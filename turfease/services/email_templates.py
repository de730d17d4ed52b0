"""HTML email templates.

Every template returns ``(subject, html, text)``; user-supplied values are
escaped before interpolation.
"""
from html import escape
from typing import Optional

THEME = {
    "primary": "#667eea",
    "primary_dark": "#764ba2",
    "success": "#10b981",
    "success_dark": "#059669",
    "danger": "#ef4444",
    "background": "#f9f9f9",
    "text_primary": "#333333",
    "text_secondary": "#666666",
    "footer_bg": "#333333",
    "footer_text": "#999999",
}

BRAND = "TurfEase"


def _layout(heading: str, body: str, accent: str = THEME["primary"], accent_dark: str = THEME["primary_dark"]) -> str:
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background: linear-gradient(135deg, {accent} 0%, {accent_dark} 100%); padding: 20px; text-align: center;">
    <h1 style="color: white; margin: 0;">{BRAND}</h1>
  </div>
  <div style="padding: 30px; background: {THEME['background']};">
    <h2 style="color: {THEME['text_primary']}; margin-bottom: 20px;">{heading}</h2>
    {body}
    <p style="color: {THEME['text_secondary']}; line-height: 1.6;">Best regards,<br>The {BRAND} Team</p>
  </div>
  <div style="background: {THEME['footer_bg']}; padding: 20px; text-align: center;">
    <p style="color: {THEME['footer_text']}; margin: 0; font-size: 12px;">&copy; {BRAND}. All rights reserved.</p>
  </div>
</div>
"""


def _paragraph(text: str) -> str:
    return f'<p style="color: {THEME["text_secondary"]}; line-height: 1.6;">{text}</p>'


def _button(url: str, label: str, color: str) -> str:
    return (
        f'<div style="text-align: center; margin: 30px 0;">'
        f'<a href="{escape(url, quote=True)}" style="background: {color}; color: white; padding: 12px 30px; '
        f'text-decoration: none; border-radius: 5px; display: inline-block;">{escape(label)}</a></div>'
    )


def verification_code_template(display_name: str, code: str, ttl_minutes: int, resend: bool = False):
    subject = f"{BRAND} - New Verification OTP" if resend else f"{BRAND} - Email Verification OTP"
    intro = (
        "You requested a new verification OTP. Here's your new OTP:"
        if resend
        else f"Thank you for registering with {BRAND}! To complete your registration, please use the following OTP:"
    )
    code_box = (
        f'<div style="background: #fff; border: 2px solid {THEME["primary"]}; border-radius: 10px; '
        f'padding: 20px; text-align: center; margin: 20px 0;">'
        f'<h1 style="color: {THEME["primary"]}; font-size: 32px; margin: 0; letter-spacing: 5px;">{escape(code)}</h1></div>'
    )
    body = "".join([
        _paragraph(f"Hi {escape(display_name)},"),
        _paragraph(intro),
        code_box,
        _paragraph(
            f"This OTP will expire in {ttl_minutes} minutes. "
            "If you didn't request this verification, please ignore this email."
        ),
    ])
    heading = "New Verification OTP" if resend else "Email Verification"
    text = f"Hi {display_name},\n\nYour {BRAND} verification code is {code}. It expires in {ttl_minutes} minutes."
    return subject, _layout(heading, body), text


def owner_approved_template(display_name: str, business_name: str, login_url: str):
    subject = f"{BRAND} - Account Approved! Welcome to {BRAND}"
    body = "".join([
        _paragraph(f"Hi {escape(display_name)},"),
        _paragraph(
            f"Great news! Your {BRAND} owner account for <strong>{escape(business_name)}</strong> "
            "has been approved by our admin team."
        ),
        _paragraph("You can now log in, complete your turf listings and start accepting bookings."),
        _button(login_url, "Login to Your Account", THEME["success"]),
    ])
    text = (
        f"Hi {display_name},\n\nYour {BRAND} owner account for {business_name} has been approved. "
        f"Log in at {login_url}"
    )
    return subject, _layout("Account Approved!", body, THEME["success"], THEME["success_dark"]), text


def owner_rejected_template(display_name: str, business_name: str, notes: Optional[str]):
    subject = f"{BRAND} - Account Application Update"
    parts = [
        _paragraph(f"Hi {escape(display_name)},"),
        _paragraph(
            f"Thank you for your interest in {BRAND}. After reviewing your owner application for "
            f"<strong>{escape(business_name)}</strong>, we are unable to approve it at this time."
        ),
    ]
    if notes:
        parts.append(_paragraph(f"<strong>Reason:</strong> {escape(notes)}"))
    parts.append(_paragraph("If you have questions, reply to this email and our team will help."))
    text = (
        f"Hi {display_name},\n\nYour {BRAND} owner application for {business_name} was not approved."
        + (f"\nReason: {notes}" if notes else "")
    )
    return subject, _layout("Application Update", "".join(parts), THEME["danger"], THEME["danger"]), text


def password_reset_template(display_name: str, reset_url: str, ttl_minutes: int):
    subject = f"{BRAND} - Password Reset Request"
    body = "".join([
        _paragraph(f"Hi {escape(display_name)},"),
        _paragraph("We received a request to reset your password. Click the button below to choose a new one."),
        _button(reset_url, "Reset Password", THEME["primary"]),
        _paragraph(
            f"This link will expire in {ttl_minutes} minutes. "
            "If you didn't request a password reset, you can ignore this email."
        ),
    ])
    text = f"Hi {display_name},\n\nReset your {BRAND} password here: {reset_url}\nThe link expires in {ttl_minutes} minutes."
    return subject, _layout("Password Reset", body), text
