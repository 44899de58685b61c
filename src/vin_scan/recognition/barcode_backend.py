"""
ZBar Barcode Scanner
====================

Barcode adapter over pyzbar. VIN labels typically carry Code 39,
Code 128, PDF417 or QR symbols; every symbol zbar finds is returned and
the pipeline decides which one is a VIN.
"""

import logging
from typing import List

from ..exceptions import BackendError, RecognitionUnavailable
from .backends import BarcodeReading, BarcodeScanner, ImageHandle, load_image, to_grayscale

logger = logging.getLogger(__name__)


class ZBarBarcodeScanner(BarcodeScanner):
    """pyzbar-based barcode scanner."""

    def __init__(self):
        self._decode = None
        self._initialized = False

    @property
    def name(self) -> str:
        return "ZBar"

    @property
    def is_available(self) -> bool:
        """Check if pyzbar and the zbar shared library are installed."""
        try:
            from pyzbar.pyzbar import decode  # noqa: F401
            return True
        except (ImportError, OSError):
            return False

    def initialize(self) -> None:
        if self._initialized:
            return
        if not self.is_available:
            raise RecognitionUnavailable(self.name, "pyzbar is not installed. Run: pip install pyzbar")

        from pyzbar.pyzbar import decode
        self._decode = decode
        self._initialized = True
        logger.info("ZBar barcode scanner initialized")

    def scan(self, image: ImageHandle) -> List[BarcodeReading]:
        if not self._initialized:
            self.initialize()

        gray = to_grayscale(load_image(image))

        try:
            symbols = self._decode(gray)
        except Exception as e:
            raise BackendError(f"Barcode decode failed: {e}", backend=self.name, details=str(e)) from e

        readings = []
        for obj in symbols:
            value = obj.data.decode('utf-8', errors='ignore').strip()
            if value:
                readings.append(BarcodeReading(value=value, format=str(obj.type)))

        logger.debug(f"ZBar decoded {len(readings)} barcode(s)")
        return readings
