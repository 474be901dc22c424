"""
Main Window — a plain writing surface with the live flow readout.

Contains:
  - Start/Stop monitoring and the attention-estimator toggle
  - Animated score, flow level label and progress bar
  - Attention readout and a digest of the recent tick history
  - The live intervention panel (hidden when there is none)
  - Last-30-days stats and CSV export
"""

from __future__ import annotations

import logging
from pathlib import Path

from PySide6.QtCore import QTimer, Slot
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QApplication, QCheckBox, QFileDialog, QFrame, QHBoxLayout, QLabel, QMainWindow,
    QMessageBox, QPlainTextEdit, QProgressBar, QPushButton, QVBoxLayout, QWidget,
)

from flowmonitor.config import MonitorConfig
from flowmonitor.data.database import Database
from flowmonitor.data.repository import Repository
from flowmonitor.engine.attention import AttentionEstimator, Distribution
from flowmonitor.engine.models import InterventionEvent, MetricsSnapshot, SessionState
from flowmonitor.services import analytics
from flowmonitor.services.intervention_guide import format_prompt
from flowmonitor.services.monitor_service import FlowMonitor
from flowmonitor.services.session_store import RepositorySessionStore
from flowmonitor.ui.event_filter import QtEventSource
from flowmonitor.ui.qt_scheduler import QtScheduler
from flowmonitor.ui.styles import LEVEL_COLORS

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, app: QApplication, config: MonitorConfig) -> None:
        super().__init__()
        self.setWindowTitle("FlowMonitor")
        self.resize(900, 640)
        self.config = config

        # ── Core systems ────────────────────────────────────────────────
        self.db = Database(config.db_path)
        self.db.connect()
        self.repo = Repository(self.db.conn)
        self.events = QtEventSource(app, parent=self)
        self.monitor = FlowMonitor(
            QtScheduler(),
            self.events,
            store=RepositorySessionStore(self.repo),
            config=config,
            on_snapshot=self._on_snapshot,
            on_intervention=self._on_intervention,
            on_intervention_cleared=self._on_intervention_cleared,
            on_state_changed=self._on_state_changed,
            on_attention=self._on_attention,
        )
        self.estimator = AttentionEstimator(
            exponent=config.corner_exponent,
            smoothing_factor=config.smoothing_factor,
            noise_amplitude=config.noise_amplitude,
        )

        # ── Display refresh ─────────────────────────────────────────────
        self._refresh_timer = QTimer(self)
        self._refresh_timer.timeout.connect(self._refresh_readout)
        self._refresh_timer.setInterval(config.display_refresh_ms)

        self._build_ui()
        self._on_state_changed(SessionState.IDLE)

    # ── UI Construction ─────────────────────────────────────────────────

    def _build_ui(self) -> None:
        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)
        layout.setContentsMargins(16, 16, 16, 16)

        bar = QHBoxLayout()
        self.toggle_btn = QPushButton("Start Flow Session")
        self.toggle_btn.clicked.connect(self._toggle_monitoring)
        bar.addWidget(self.toggle_btn)

        self.attention_box = QCheckBox("Attention tracking")
        self.attention_box.toggled.connect(self._toggle_attention)
        bar.addWidget(self.attention_box)
        bar.addStretch()

        self.level_label = QLabel("")
        self.level_label.setObjectName("level")
        bar.addWidget(self.level_label)
        self.score_label = QLabel("")
        self.score_label.setObjectName("score")
        bar.addWidget(self.score_label)
        layout.addLayout(bar)

        self.score_bar = QProgressBar()
        self.score_bar.setRange(0, 100)
        self.score_bar.setTextVisible(False)
        layout.addWidget(self.score_bar)

        readout = QHBoxLayout()
        self.history_label = QLabel("")
        self.history_label.setObjectName("muted")
        readout.addWidget(self.history_label)
        readout.addStretch()
        self.attention_label = QLabel("")
        self.attention_label.setObjectName("muted")
        readout.addWidget(self.attention_label)
        layout.addLayout(readout)

        self.intervention_frame = QFrame()
        self.intervention_frame.setObjectName("intervention")
        panel = QVBoxLayout(self.intervention_frame)
        self.intervention_title = QLabel("")
        self.intervention_title.setObjectName("intervention_title")
        self.intervention_reason = QLabel("")
        self.intervention_steps = QLabel("")
        self.intervention_steps.setWordWrap(True)
        buttons = QHBoxLayout()
        done_btn = QPushButton("Done")
        done_btn.clicked.connect(lambda: self.monitor.dismiss_intervention(completed=True))
        skip_btn = QPushButton("Skip this intervention")
        skip_btn.clicked.connect(lambda: self.monitor.dismiss_intervention(completed=False))
        buttons.addWidget(done_btn)
        buttons.addWidget(skip_btn)
        buttons.addStretch()
        for w in (self.intervention_title, self.intervention_reason, self.intervention_steps):
            panel.addWidget(w)
        panel.addLayout(buttons)
        self.intervention_frame.hide()
        layout.addWidget(self.intervention_frame)

        self.editor = QPlainTextEdit()
        self.editor.setPlaceholderText("Start writing…")
        layout.addWidget(self.editor, stretch=1)

        stats_row = QHBoxLayout()
        self.stats_label = QLabel("")
        self.stats_label.setObjectName("muted")
        self.stats_label.setWordWrap(True)
        stats_row.addWidget(self.stats_label, stretch=1)
        export_btn = QPushButton("Export CSV")
        export_btn.clicked.connect(self._export_csv)
        stats_row.addWidget(export_btn)
        layout.addLayout(stats_row)

        self.statusBar().showMessage("Idle")

    # ── Slots ───────────────────────────────────────────────────────────

    @Slot()
    def _toggle_monitoring(self) -> None:
        if self.monitor.is_monitoring:
            self.monitor.stop()
        else:
            self.monitor.start()

    @Slot(bool)
    def _toggle_attention(self, enabled: bool) -> None:
        if enabled:
            self.estimator.reset()
            self.monitor.enable_attention(self.estimator)
        else:
            self.monitor.disable_attention()

    @Slot()
    def _refresh_readout(self) -> None:
        score = self.monitor.displayed_score
        level = self.monitor.level
        self.score_label.setText(f"{round(score)}")
        self.level_label.setText(level)
        self.level_label.setStyleSheet(f"color: {LEVEL_COLORS[level]};")
        self.score_bar.setValue(round(score))
        mins, secs = divmod(int(self.monitor.elapsed_seconds()), 60)
        self.statusBar().showMessage(f"Flow session active · {mins:02d}:{secs:02d}")

    @Slot()
    def _refresh_stats(self) -> None:
        lines = analytics.recent_summary(self.repo)
        self.stats_label.setText(f"Last {analytics.DEFAULT_RANGE_DAYS} days · " + " · ".join(lines))

    @Slot()
    def _export_csv(self) -> None:
        path, _ = QFileDialog.getSaveFileName(
            self, "Save CSV", "flow_sessions_export.csv", "CSV files (*.csv)"
        )
        if not path:
            return
        if analytics.export_csv(self.repo, Path(path)):
            QMessageBox.information(self, "Export", f"Data exported to {path}")
        else:
            QMessageBox.information(self, "Export", "No data to export.")

    # ── Monitor callbacks ───────────────────────────────────────────────

    def _on_snapshot(self, snapshot: MetricsSnapshot) -> None:
        self.history_label.setText(analytics.tick_caption(self.monitor.get_history()))

    def _on_attention(self, display: Distribution, engagement: float) -> None:
        predicted = self.estimator.predicted_class()
        self.attention_label.setText(
            f"{predicted.value} ({self.estimator.confidence():.0%}) · engagement {engagement:.0%}"
        )

    def _on_state_changed(self, state: SessionState) -> None:
        monitoring = state == SessionState.MONITORING
        self.toggle_btn.setText("End Session" if monitoring else "Start Flow Session")
        self.toggle_btn.setObjectName("stop" if monitoring else "start")
        self.toggle_btn.style().unpolish(self.toggle_btn)
        self.toggle_btn.style().polish(self.toggle_btn)
        if monitoring:
            self._refresh_timer.start()
        else:
            self._refresh_timer.stop()
            self.score_label.setText("")
            self.level_label.setText("")
            self.score_bar.setValue(0)
            self.history_label.setText("")
            self.attention_label.setText("")
            self.statusBar().showMessage("Idle")
            # after the deferred final session update
            QTimer.singleShot(0, self._refresh_stats)

    def _on_intervention(self, event: InterventionEvent) -> None:
        prompt = format_prompt(event)
        self.intervention_title.setText(prompt["title"])
        self.intervention_reason.setText(prompt["reason"])
        self.intervention_steps.setText(prompt["instructions"])
        self.intervention_frame.show()

    def _on_intervention_cleared(self) -> None:
        self.intervention_frame.hide()

    # ── Close ───────────────────────────────────────────────────────────

    def closeEvent(self, event: QCloseEvent) -> None:
        self.monitor.stop()
        QApplication.processEvents()  # let the final deferred session update run
        self.events.shutdown()
        self.db.close()
        event.accept()
