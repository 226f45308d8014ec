from .svg_qr_code_renderer import SvgQrCodeRenderer

__all__ = ["SvgQrCodeRenderer"]
