"""
UI Module

PyQt6 seams used by the desktop client: browser checkout, dialogs, the
overdue banner and background workers.
"""
