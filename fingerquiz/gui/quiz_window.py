"""
Quiz Window GUI for FINGERQUIZ

Shows the annotated camera frames produced by the quiz loop and forwards key
presses back to it as key names ("1".."6", "enter", "escape", letters).
The loop runs on a worker thread; Qt owns the main thread.
"""

import queue
import sys

import numpy as np
from PyQt6.QtWidgets import QApplication, QWidget, QLabel, QVBoxLayout
from PyQt6.QtCore import Qt, QTimer, pyqtSignal, QObject
from PyQt6.QtGui import QPixmap, QImage


# keyed by the integer code QKeyEvent.key() returns
SPECIAL_KEYS = {
    Qt.Key.Key_Return.value: "enter",
    Qt.Key.Key_Enter.value: "enter",
    Qt.Key.Key_Escape.value: "escape",
    Qt.Key.Key_Space.value: "space",
}


def key_name(key: int, text: str = "") -> str:
    """Translate a Qt key code (plus its text) into an input-map key name."""
    name = SPECIAL_KEYS.get(int(getattr(key, "value", key)))
    if name:
        return name
    if text and text.isprintable():
        return text.lower()
    return ""


def frame_to_pixmap(frame: np.ndarray) -> QPixmap:
    """BGR uint8 frame -> QPixmap (copies the pixels)."""
    rgb = np.ascontiguousarray(frame[:, :, ::-1])
    h, w = rgb.shape[:2]
    image = QImage(rgb.data, w, h, rgb.strides[0], QImage.Format.Format_RGB888)
    return QPixmap.fromImage(image.copy())


class FrameSignals(QObject):
    """Qt signals for thread-safe frame updates."""
    update_frame = pyqtSignal(object)    # BGR frame (numpy array)


class QuizWindow(QWidget):
    """Camera view of the quiz. Keys go to `key_queue`; closing the window quits."""

    def __init__(self, config, key_queue=None):
        super().__init__()
        self.config = config
        self.key_queue = key_queue
        self._build()

    def _build(self):
        self.setWindowTitle("FINGERQUIZ - show your fingers!")
        self.resize(
            self.config.get('display', 'window_width', default=1280),
            self.config.get('display', 'window_height', default=720),
        )
        self.setStyleSheet("background-color: black; color: white;")

        self.view = QLabel("Starting camera...", self)
        self.view.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.view.setMinimumSize(320, 240)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.view)

    def show_frame(self, frame):
        if frame is None:
            return
        self.view.setPixmap(frame_to_pixmap(frame).scaled(
            self.view.size(),
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation,
        ))

    def _send_key(self, name: str):
        if self.key_queue is None or not name:
            return
        try:
            self.key_queue.put_nowait(name)
        except queue.Full:
            print(f"⚠ Key queue full, dropped {name!r}")

    def keyPressEvent(self, event):
        self._send_key(key_name(event.key(), event.text()))
        super().keyPressEvent(event)

    def closeEvent(self, event):
        self._send_key("q")
        super().closeEvent(event)


def run_gui(config, frame_queue, key_queue=None):
    """
    Run the quiz window on the main thread until the loop sends the shutdown
    sentinel (None) on `frame_queue` or the window is closed.
    """
    app = QApplication.instance() or QApplication(sys.argv)

    window = QuizWindow(config, key_queue)
    window.show()

    signals = FrameSignals()
    signals.update_frame.connect(window.show_frame)

    def poll_frames():
        latest = None
        while True:
            try:
                item = frame_queue.get_nowait()
            except queue.Empty:
                break
            if item is None:
                print("🛑 Quiz finished, closing window...")
                app.quit()
                return
            latest = item
        # only the newest frame is worth drawing
        if latest is not None:
            signals.update_frame.emit(latest)

    timer = QTimer()
    timer.timeout.connect(poll_frames)
    timer.start(30)

    exit_code = app.exec()
    print(f"📺 Quiz window closed (exit code {exit_code})")
    return exit_code


__all__ = ['key_name', 'frame_to_pixmap', 'QuizWindow', 'run_gui']
