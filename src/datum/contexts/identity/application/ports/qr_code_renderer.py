from __future__ import annotations

from typing import Protocol


class QrCodeRenderer(Protocol):
    """
    QrCodeRenderer — port turning an enrollment URI into an embeddable image.

    Related:
      - src/datum/contexts/identity/adapters/outbound/qr/svg_qr_code_renderer.py
      - src/datum/contexts/identity/application/use_cases/begin_two_factor_setup.py
    """

    def render_data_uri(self, *, payload: str) -> str:
        """
        Render payload as a QR code and return it as a `data:` URI.

        Args:
            payload: Text encoded in the QR code (otpauth URI).
        Returns:
            str: Data URI usable directly as an `<img src>`.
        Assumptions:
            Payload fits into a single QR symbol.
        Raises:
            ValueError: If payload cannot be encoded.
        Side Effects:
            None.
        """
        ...
