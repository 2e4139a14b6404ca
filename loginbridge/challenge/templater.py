"""
HTML pages for the logout confirmation, device verification and error screens.
"""

from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader

_template_dir = Path(__file__).parent / "templates"
_env = Environment(
    loader=FileSystemLoader(_template_dir),
    autoescape=True,
)


def error_page(error: str, error_description: str = "") -> str:
    template = _env.get_template("error.jinja2")
    return template.render(
        error=error,
        error_description=error_description,
    )


def logout_page(
    challenge: str,
    csrf_token: str,
    action: str = "/logout",
    subject: Optional[str] = None,
    client_id: Optional[str] = None,
) -> str:
    """Ask the user to confirm or decline the logout."""
    template = _env.get_template("logout.jinja2")
    return template.render(
        challenge=challenge,
        csrf_token=csrf_token,
        action=action,
        subject=subject,
        client_id=client_id,
    )


def device_verify_page(
    challenge: str,
    csrf_token: str,
    action: str = "/device/verify",
    user_code: str = "",
    error: str = "",
) -> str:
    """User-code entry form; ``user_code`` pre-fills it (e.g. from a QR code link)."""
    template = _env.get_template("device_verify.jinja2")
    return template.render(
        challenge=challenge,
        csrf_token=csrf_token,
        action=action,
        user_code=user_code,
        error=error,
    )


def device_success_page() -> str:
    return _env.get_template("device_success.jinja2").render()
