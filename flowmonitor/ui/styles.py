"""
Dark stylesheet for the writing window.
Palette: base #11111b, surface #1e1e2e, accents per flow level.
"""

LEVEL_COLORS = {
    "Deep Flow": "#a6e3a1",
    "Flow": "#89b4fa",
    "Focused": "#f9e2af",
    "Distracted": "#f38ba8",
}

DARK_STYLESHEET = """
QWidget {
    background-color: #11111b;
    color: #cdd6f4;
    font-family: "Inter", "Segoe UI", sans-serif;
    font-size: 13px;
}

QPlainTextEdit {
    background-color: #1e1e2e;
    border: 1px solid #313244;
    border-radius: 6px;
    padding: 10px;
    font-size: 15px;
    selection-background-color: #89b4fa;
    selection-color: #11111b;
}

QPushButton {
    background-color: #1e1e2e;
    border: 1px solid #45475a;
    border-radius: 6px;
    padding: 6px 14px;
    font-weight: 600;
}

QPushButton:hover {
    border-color: #89b4fa;
}

QPushButton#start {
    background-color: #a6e3a1;
    color: #11111b;
    border: none;
}

QPushButton#stop {
    background-color: #f38ba8;
    color: #11111b;
    border: none;
}

QLabel#score {
    font-size: 26px;
    font-weight: 700;
}

QLabel#level {
    font-size: 15px;
    font-weight: 600;
}

QFrame#intervention {
    background-color: #1e1e2e;
    border: 1px solid #fab387;
    border-radius: 8px;
}

QLabel#muted {
    color: #a6adc8;
    font-size: 12px;
}

QLabel#intervention_title {
    font-size: 16px;
    font-weight: 700;
    color: #fab387;
}

QProgressBar {
    background-color: #1e1e2e;
    border: none;
    border-radius: 3px;
    max-height: 6px;
}
"""
