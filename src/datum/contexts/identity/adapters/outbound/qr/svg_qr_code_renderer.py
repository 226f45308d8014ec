from __future__ import annotations

import base64
import io

import qrcode
import qrcode.image.svg
from qrcode.exceptions import DataOverflowError

from datum.contexts.identity.application.ports.qr_code_renderer import QrCodeRenderer

_SVG_DATA_URI_PREFIX = "data:image/svg+xml;base64,"


class SvgQrCodeRenderer(QrCodeRenderer):
    """
    SvgQrCodeRenderer — render QR codes as base64 SVG data URIs with `qrcode`.

    SVG output needs no imaging backend, so Pillow is not required.

    Related:
      - src/datum/contexts/identity/application/ports/qr_code_renderer.py
      - src/datum/contexts/identity/application/use_cases/begin_two_factor_setup.py
    """

    def render_data_uri(self, *, payload: str) -> str:
        """
        Encode payload as QR symbol and return `data:image/svg+xml;base64,...`.

        Args:
            payload: Text to encode.
        Returns:
            str: SVG data URI.
        Assumptions:
            Default error correction level (M) is sufficient for otpauth URIs.
        Raises:
            ValueError: If payload is empty or too long for a QR symbol.
        Side Effects:
            None.
        """
        if not payload:
            raise ValueError("SvgQrCodeRenderer requires non-empty payload")
        try:
            image = qrcode.make(payload, image_factory=qrcode.image.svg.SvgPathImage)
        except DataOverflowError as error:
            raise ValueError("SvgQrCodeRenderer payload does not fit a QR code") from error
        buffer = io.BytesIO()
        image.save(buffer)
        return _SVG_DATA_URI_PREFIX + base64.b64encode(buffer.getvalue()).decode("ascii")
