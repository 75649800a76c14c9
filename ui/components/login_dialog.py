"""
Sign-in dialog.

Input is checked with LoginRequest.from_form before the dialog accepts, so a
blank or malformed email never reaches the backend.
"""
from typing import Optional

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import QDialog, QLabel, QLineEdit, QPushButton, QVBoxLayout

from models.session import LoginRequest
from ui.components.custom_dialog import COLORS
from utils.validators import ValidationError

_INPUT_STYLE = f"""
    QLineEdit {{
        background-color: {COLORS['surface_variant']};
        color: {COLORS['text_primary']};
        border-radius: 6px;
        padding: 8px;
    }}
"""


class LoginDialog(QDialog):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.request: Optional[LoginRequest] = None
        self.setWindowTitle("Sign In")
        self.setModal(True)
        self.setStyleSheet(f"background-color: {COLORS['surface']};")

        layout = QVBoxLayout(self)
        layout.setContentsMargins(24, 24, 24, 24)
        layout.setSpacing(12)

        title = QLabel("The Learning Corner Library")
        title.setStyleSheet(f"color: {COLORS['primary']}; font-size: 16px; font-weight: bold;")
        layout.addWidget(title)

        self.email_input = QLineEdit()
        self.email_input.setPlaceholderText("Email")
        self.email_input.setStyleSheet(_INPUT_STYLE)
        layout.addWidget(self.email_input)

        self.password_input = QLineEdit()
        self.password_input.setPlaceholderText("Password")
        self.password_input.setEchoMode(QLineEdit.EchoMode.Password)
        self.password_input.setStyleSheet(_INPUT_STYLE)
        self.password_input.returnPressed.connect(self.submit)
        layout.addWidget(self.password_input)

        self.error_label = QLabel("")
        self.error_label.setWordWrap(True)
        self.error_label.setStyleSheet(f"color: {COLORS['error']}; font-size: 12px;")
        self.error_label.hide()
        layout.addWidget(self.error_label)

        self.sign_in_button = QPushButton("Sign In")
        self.sign_in_button.setCursor(Qt.CursorShape.PointingHandCursor)
        self.sign_in_button.setStyleSheet(f"""
            QPushButton {{
                background-color: {COLORS['primary']};
                color: white;
                border-radius: 6px;
                padding: 8px 20px;
                font-weight: bold;
            }}
        """)
        self.sign_in_button.clicked.connect(self.submit)
        layout.addWidget(self.sign_in_button)

        self.setFixedWidth(360)

    def submit(self) -> None:
        try:
            self.request = LoginRequest.from_form(self.email_input.text(), self.password_input.text())
        except ValidationError as e:
            self.show_error(e.message)
            return
        self.accept()

    def show_error(self, message: str) -> None:
        self.error_label.setText(message)
        self.error_label.show()
