"""
Overdue alert banner shown at the top of the member home screen.

Hidden unless the cached summary reports an overdue payment.
"""
from typing import Optional

from PyQt6.QtCore import pyqtSignal
from PyQt6.QtWidgets import QFrame, QHBoxLayout, QLabel, QPushButton, QVBoxLayout, QWidget

from managers.overdue_manager import banner_text
from models.overdue import OverdueSummary


class OverdueAlertBanner(QFrame):
    """Red banner with a "Pay Now" button"""

    pay_now_clicked = pyqtSignal()

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.setObjectName("overdueBanner")
        self.setStyleSheet("""
            QFrame#overdueBanner { background-color: #d32f2f; border-radius: 12px; }
            QLabel { color: white; }
        """)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(16, 12, 16, 12)

        text_layout = QVBoxLayout()
        self.title_label = QLabel()
        self.title_label.setStyleSheet("font-size: 15px; font-weight: bold;")
        self.message_label = QLabel()
        self.message_label.setWordWrap(True)
        self.sub_message_label = QLabel()
        self.sub_message_label.setWordWrap(True)
        self.sub_message_label.setStyleSheet("font-size: 12px;")
        text_layout.addWidget(self.title_label)
        text_layout.addWidget(self.message_label)
        text_layout.addWidget(self.sub_message_label)
        layout.addLayout(text_layout, 1)

        self.pay_button = QPushButton("Pay Now")
        self.pay_button.setStyleSheet(
            "background-color: white; color: #d32f2f; border-radius: 8px; padding: 8px 16px; font-weight: bold;"
        )
        self.pay_button.clicked.connect(self.pay_now_clicked.emit)
        layout.addWidget(self.pay_button)

        self.setVisible(False)

    def update_summary(self, summary: Optional[OverdueSummary]) -> None:
        text = banner_text(summary)
        if text is None:
            self.setVisible(False)
            return
        self.title_label.setText(text.title)
        self.message_label.setText(text.message)
        self.sub_message_label.setText(text.sub_message)
        self.setVisible(True)
