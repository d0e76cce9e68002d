"""
Overlay Painter for Murmur

Executes renderer drawing commands on a QPainter, and measures label text
for the renderer with QFontMetricsF.
"""

from typing import Iterable
from PySide6.QtGui import (
    QBrush, QColor, QFont, QFontMetricsF, QLinearGradient, QPainter,
    QPainterPath, QPen
)
from PySide6.QtCore import Qt, QPointF, QRectF
import logging

from murmur.theme import LABEL_FONT_FAMILY, LABEL_FONT_SIZE
from murmur.ui.renderer import (
    DrawCommand,
    DrawShimmerText,
    DrawText,
    FillCircle,
    FillPill,
    FillRoundedRect,
    StrokePill,
    TextExtents,
    pill_geometry,
)

logger = logging.getLogger(__name__)


def _qcolor(color) -> QColor:
    r, g, b, a = color
    return QColor.fromRgbF(r, g, b, a)


class OverlayPainter:
    """
    QPainter backend for the capsule renderer.

    The label font is created once; text measurement and drawing share it
    so the shimmer lines up with the glyphs.

    Example:
        >>> backend = OverlayPainter()
        >>> commands = render_frame(state, t, phase, heights, backend.measure_text)
        >>> backend.paint(QPainter(widget), commands)
    """

    def __init__(self):
        self._font = QFont(LABEL_FONT_FAMILY)
        self._font.setPixelSize(int(LABEL_FONT_SIZE))
        self._metrics = QFontMetricsF(self._font)

    def measure_text(self, text: str) -> TextExtents:
        """Ink extents of text in the label font."""
        rect = self._metrics.tightBoundingRect(text)
        return TextExtents(rect.width(), rect.height(), rect.left(), rect.top())

    @staticmethod
    def pill_path() -> QPainterPath:
        """Capsule outline shared by background, rim and shimmer clip."""
        x, y, w, h, r = pill_geometry()
        path = QPainterPath()
        path.addRoundedRect(QRectF(x, y, w, h), r, r)
        return path

    def paint(self, painter: QPainter, commands: Iterable[DrawCommand]) -> None:
        """
        Draw commands in order.

        Args:
            painter: Active QPainter (antialiasing is enabled here)
            commands: Output of render_frame()
        """
        painter.setRenderHint(QPainter.Antialiasing)
        painter.setRenderHint(QPainter.TextAntialiasing)

        for command in commands:
            if isinstance(command, FillPill):
                painter.fillPath(self.pill_path(), _qcolor(command.color))

            elif isinstance(command, StrokePill):
                pen = QPen(_qcolor(command.color))
                pen.setWidthF(command.line_width)
                painter.setPen(pen)
                painter.setBrush(Qt.NoBrush)
                painter.drawPath(self.pill_path())

            elif isinstance(command, FillCircle):
                painter.setPen(Qt.NoPen)
                painter.setBrush(_qcolor(command.color))
                painter.drawEllipse(
                    QPointF(command.cx, command.cy), command.radius, command.radius
                )

            elif isinstance(command, FillRoundedRect):
                path = QPainterPath()
                path.addRoundedRect(
                    QRectF(command.x, command.y, command.width, command.height),
                    command.radius,
                    command.radius
                )
                painter.fillPath(path, _qcolor(command.color))

            elif isinstance(command, DrawText):
                painter.setFont(self._font)
                painter.setPen(_qcolor(command.color))
                painter.drawText(QPointF(command.x, command.y), command.text)

            elif isinstance(command, DrawShimmerText):
                self._paint_shimmer(painter, command)

            else:
                logger.debug(f"Unknown draw command: {command!r}")

    def _paint_shimmer(self, painter: QPainter, command: DrawShimmerText) -> None:
        gradient = QLinearGradient(command.gradient_x0, 0.0, command.gradient_x1, 0.0)
        for offset, alpha in command.stops:
            gradient.setColorAt(offset, QColor.fromRgbF(1.0, 1.0, 1.0, alpha))

        # Glyph outlines filled with the gradient, clipped to the capsule
        text_path = QPainterPath()
        text_path.addText(QPointF(command.x, command.y), self._font, command.text)

        painter.save()
        painter.setClipPath(self.pill_path())
        painter.fillPath(text_path, QBrush(gradient))
        painter.restore()
