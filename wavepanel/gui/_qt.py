"""Qt import helper.
Returns None for require_qt() if Qt libs not installed, matching optional behavior.
"""
from __future__ import annotations
import os
import sys


def require_qt():  # pragma: no cover - trivial
    try:
        # Headless friendly platform unless the caller already chose one
        if sys.platform == 'darwin':
            os.environ.setdefault("QT_QPA_PLATFORM", "minimal")
            os.environ.setdefault("QT_MAC_WANTS_LAYER", "1")
        else:
            os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
        from PySide6 import QtWidgets, QtCore

        class QtWrapper:
            QApplication = QtWidgets.QApplication
            QMainWindow = QtWidgets.QMainWindow
            QWidget = QtWidgets.QWidget
            QTabWidget = QtWidgets.QTabWidget
            QVBoxLayout = QtWidgets.QVBoxLayout
            QHBoxLayout = QtWidgets.QHBoxLayout
            QFormLayout = QtWidgets.QFormLayout
            QGroupBox = QtWidgets.QGroupBox
            QLabel = QtWidgets.QLabel
            QPushButton = QtWidgets.QPushButton
            QTextEdit = QtWidgets.QTextEdit
            QLineEdit = QtWidgets.QLineEdit
            QComboBox = QtWidgets.QComboBox
            QCheckBox = QtWidgets.QCheckBox
            Qt = QtCore.Qt
            QTimer = QtCore.QTimer
            QElapsedTimer = QtCore.QElapsedTimer
        return QtWrapper
    except ImportError:
        return None
