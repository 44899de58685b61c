"""
OpenCV Image Quality Analyzer
=============================

Fast per-frame quality estimate used to size the attempt budget:
- contrast: grayscale standard deviation, normalized by 128
- brightness: grayscale mean, normalized by 255
- blur: variance of the Laplacian below a threshold
- glare: share of near-saturated pixels above a threshold
"""

import logging

import cv2
import numpy as np

from .backends import ImageHandle, ImageQuality, QualityAnalyzer, load_image, to_grayscale

logger = logging.getLogger(__name__)


class OpenCVQualityAnalyzer(QualityAnalyzer):

    def __init__(
        self,
        blur_threshold: float = 100.0,
        glare_level: int = 250,
        glare_ratio: float = 0.05,
    ):
        self.blur_threshold = blur_threshold
        self.glare_level = glare_level
        self.glare_ratio = glare_ratio
        self._initialized = True

    @property
    def name(self) -> str:
        return "OpenCV"

    @property
    def is_available(self) -> bool:
        return True

    def analyze(self, image: ImageHandle) -> ImageQuality:
        gray = to_grayscale(load_image(image))

        contrast = float(np.clip(np.std(gray) / 128.0, 0.0, 1.0))
        brightness = float(np.clip(np.mean(gray) / 255.0, 0.0, 1.0))
        sharpness = float(cv2.Laplacian(gray, cv2.CV_64F).var())
        saturated = float(np.count_nonzero(gray >= self.glare_level)) / gray.size

        quality = ImageQuality(
            contrast=contrast,
            brightness=brightness,
            is_blurry=sharpness < self.blur_threshold,
            has_glare=saturated > self.glare_ratio,
        )
        logger.debug(
            f"Quality: contrast={contrast:.2f} brightness={brightness:.2f} "
            f"sharpness={sharpness:.1f} glare={saturated:.1%}"
        )
        return quality
