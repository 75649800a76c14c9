"""
UI Components Module

Reusable PyQt6 widgets and dialogs.
"""

from ui.components.custom_dialog import (
    show_access_restricted,
    show_error,
    show_info,
    show_success,
)
from ui.components.login_dialog import LoginDialog
from ui.components.overdue_banner import OverdueAlertBanner

__all__ = [
    'LoginDialog',
    'OverdueAlertBanner',
    'show_access_restricted',
    'show_error',
    'show_info',
    'show_success',
]
