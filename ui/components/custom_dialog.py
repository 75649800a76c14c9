"""
Modal dialogs for PyQt6.

``show_access_restricted`` is the choice dialog shown when the access gate
denies an action: it offers exactly the choices carried by the decision.
"""
from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import QDialog, QFrame, QHBoxLayout, QLabel, QPushButton, QVBoxLayout

from managers.access_gate import GateChoice, GateDecision

COLORS = {
    "background": "#F5F3FA",
    "surface": "#FFFFFF",
    "text_primary": "#1F1B2E",
    "text_secondary": "#5B5670",
    "primary": "#4D2C91",
    "surface_variant": "#ECE8F5",
    "info": "#2196F3",
    "warning": "#FF9800",
    "error": "#D32F2F",
    "success": "#2E7D32",
}

_CHOICE_LABELS = {
    GateChoice.VIEW_OVERDUES: "View Overdues",
    GateChoice.CANCEL: "Cancel",
}


class CustomDialog(QDialog):
    """Themed message dialog; ``buttons`` is a list of (text, result, primary)."""

    def __init__(self, parent, title, message, dialog_type="info", buttons=None):
        super().__init__(parent)
        self.result_value = None
        self.setWindowTitle(title)
        self.setModal(True)
        self.setStyleSheet(f"background-color: {COLORS['background']}; border: none;")

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        container = QFrame()
        container.setStyleSheet(f"background-color: {COLORS['surface']}; margin: 2px; border-radius: 8px;")
        container_layout = QVBoxLayout(container)
        container_layout.setContentsMargins(24, 24, 24, 24)
        container_layout.setSpacing(16)

        # Header (Icon + Title)
        header_layout = QHBoxLayout()
        header_layout.setSpacing(12)

        icon_map = {
            "info": ("i", COLORS["info"]),
            "warning": ("!", COLORS["warning"]),
            "error": ("x", COLORS["error"]),
            "question": ("?", COLORS["info"]),
            "success": ("v", COLORS["success"]),
        }
        icon_char, icon_color = icon_map.get(dialog_type, ("i", COLORS["primary"]))

        icon_label = QLabel(icon_char)
        icon_label.setFixedSize(28, 28)
        icon_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        icon_label.setStyleSheet(
            f"background-color: {icon_color}; color: white; border-radius: 14px; font-weight: bold;"
        )
        header_layout.addWidget(icon_label)

        title_label = QLabel(title)
        title_label.setStyleSheet(f"color: {COLORS['text_primary']}; font-size: 15px; font-weight: bold;")
        header_layout.addWidget(title_label)
        header_layout.addStretch()
        container_layout.addLayout(header_layout)

        self.message_label = QLabel(message)
        self.message_label.setWordWrap(True)
        self.message_label.setStyleSheet(f"color: {COLORS['text_secondary']}; font-size: 13px;")
        container_layout.addWidget(self.message_label)

        button_layout = QHBoxLayout()
        button_layout.addStretch()

        if buttons is None:
            buttons = [("OK", True, True)]

        self.buttons = {}
        for text, result, primary in buttons:
            btn = QPushButton(text)
            if primary:
                btn.setStyleSheet(f"""
                    QPushButton {{
                        background-color: {COLORS['primary']};
                        color: white;
                        border-radius: 6px;
                        padding: 8px 20px;
                        font-weight: bold;
                    }}
                """)
            else:
                btn.setStyleSheet(f"""
                    QPushButton {{
                        background-color: {COLORS['surface_variant']};
                        color: {COLORS['text_primary']};
                        border-radius: 6px;
                        padding: 8px 20px;
                    }}
                """)
            btn.setCursor(Qt.CursorShape.PointingHandCursor)
            # Default argument binds this iteration's result
            btn.clicked.connect(lambda _checked=False, value=result: self.done_with_result(value))
            button_layout.addWidget(btn)
            self.buttons[result] = btn

        container_layout.addLayout(button_layout)
        layout.addWidget(container)

        self.adjustSize()
        if self.width() < 350:
            self.setFixedWidth(350)

    def done_with_result(self, result):
        self.result_value = result
        self.accept()

    def show_and_wait(self):
        self.exec()
        return self.result_value


def show_info(parent, title, message):
    return CustomDialog(parent, title, message, "info").show_and_wait()


def show_error(parent, title, message):
    return CustomDialog(parent, title, message, "error").show_and_wait()


def show_success(parent, title, message):
    return CustomDialog(parent, title, message, "success").show_and_wait()


def build_access_restricted_dialog(parent, decision: GateDecision) -> CustomDialog:
    buttons = [
        (_CHOICE_LABELS[choice], choice, choice is GateChoice.VIEW_OVERDUES)
        for choice in decision.choices
    ]
    return CustomDialog(parent, decision.title, decision.message, "warning", buttons=buttons)


def show_access_restricted(parent, decision: GateDecision) -> GateChoice:
    """Closing the dialog without a choice counts as Cancel."""
    result = build_access_restricted_dialog(parent, decision).show_and_wait()
    return result if isinstance(result, GateChoice) else GateChoice.CANCEL
