"""Receipt photo quality analysis and OCR-friendly image variants."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import cv2
import numpy as np

logger = logging.getLogger(__name__)

LOW_RESOLUTION = "low_resolution"
TOO_DARK = "too_dark"
UNREADABLE = "unreadable"


@dataclass(frozen=True)
class PreprocessOptions:
    target_width: int | None = None
    brighten: bool = False
    enhance_contrast: bool = True
    sharpen: bool = True
    grayscale: bool = True


@dataclass(frozen=True)
class QualityAnalysis:
    needs_enhancement: bool
    issues: tuple[str, ...] = ()
    suggested_options: PreprocessOptions = field(default_factory=PreprocessOptions)
    width: int = 0
    height: int = 0
    brightness: float = 0.0


@dataclass(frozen=True)
class ImageVariant:
    data: bytes
    operations: tuple[str, ...] = ("original",)

    @property
    def label(self) -> str:
        return "+".join(self.operations)


# -- primitive operations ------------------------------------------------


def decode(image: bytes) -> np.ndarray | None:
    buf = np.frombuffer(image, dtype=np.uint8)
    if buf.size == 0:
        return None
    return cv2.imdecode(buf, cv2.IMREAD_COLOR)


def encode(img: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", img)
    if not ok:
        raise ValueError("PNG encoding failed")
    return buf.tobytes()


def resize(img: np.ndarray, width: int) -> np.ndarray:
    h, w = img.shape[:2]
    if w == width:
        return img
    scale = width / w
    interpolation = cv2.INTER_CUBIC if scale > 1 else cv2.INTER_AREA
    return cv2.resize(img, (width, max(1, int(h * scale))), interpolation=interpolation)


def grayscale(img: np.ndarray) -> np.ndarray:
    if img.ndim == 2:
        return img
    return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)


def sharpen(
    img: np.ndarray, sigma: float = 1.0, flat: float = 1.0, jagged: float = 2.0
) -> np.ndarray:
    """Unsharp mask: ``flat`` strength on smooth areas, ``jagged`` on edges."""
    src = img.astype(np.float32)
    blurred = cv2.GaussianBlur(src, (0, 0), sigma)
    detail = src - blurred
    amount = np.where(np.abs(detail) > 10, jagged, flat).astype(np.float32)
    return np.clip(src + amount * detail, 0, 255).astype(np.uint8)


def normalize(img: np.ndarray) -> np.ndarray:
    return cv2.normalize(img, None, 0, 255, cv2.NORM_MINMAX)


def linear_contrast(img: np.ndarray, a: float, b: float) -> np.ndarray:
    """``a * pixel + b``, saturated to 0-255."""
    return cv2.convertScaleAbs(img, alpha=a, beta=b)


def modulate(
    img: np.ndarray, brightness: float = 1.0, saturation: float = 1.0
) -> np.ndarray:
    if img.ndim == 2:
        return linear_contrast(img, brightness, 0)
    hsv = cv2.cvtColor(img, cv2.COLOR_BGR2HSV).astype(np.float32)
    hsv[..., 1] *= saturation
    hsv[..., 2] *= brightness
    hsv = np.clip(hsv, 0, 255).astype(np.uint8)
    return cv2.cvtColor(hsv, cv2.COLOR_HSV2BGR)


def equalize(img: np.ndarray) -> np.ndarray:
    """Local contrast enhancement (CLAHE) on a grayscale image."""
    clahe = cv2.createCLAHE(clipLimit=2.0, tileGridSize=(8, 8))
    return clahe.apply(grayscale(img))


# -- analyzer / variant generator ----------------------------------------


class ImagePreprocessor:
    """Produces OCR-friendly versions of a receipt photo.

    Every failure degrades to returning the original image only, so OCR
    is never blocked by preprocessing.
    """

    def __init__(
        self,
        min_width: int = 800,
        min_brightness: float = 100.0,
        target_width: int = 1600,
        max_variants: int = 3,
    ) -> None:
        self.min_width = min_width
        self.min_brightness = min_brightness
        self.target_width = target_width
        self.max_variants = max(1, max_variants)

    def analyze(self, image: bytes) -> QualityAnalysis:
        try:
            img = decode(image)
        except cv2.error as e:
            logger.warning("Could not decode image: %s", e)
            img = None
        if img is None:
            return QualityAnalysis(needs_enhancement=False, issues=(UNREADABLE,))

        h, w = img.shape[:2]
        brightness = float(img.mean())
        issues: list[str] = []
        if w < self.min_width:
            issues.append(LOW_RESOLUTION)
        if brightness < self.min_brightness:
            issues.append(TOO_DARK)

        options = PreprocessOptions(
            target_width=self.target_width
            if w < self.min_width or w > self.target_width
            else None,
            brighten=TOO_DARK in issues,
        )
        logger.debug("Image %dx%d brightness %.1f issues %s", w, h, brightness, issues)
        return QualityAnalysis(
            needs_enhancement=bool(issues),
            issues=tuple(issues),
            suggested_options=options,
            width=w,
            height=h,
            brightness=brightness,
        )

    def preprocess(
        self, image: bytes, options: PreprocessOptions | None = None
    ) -> list[ImageVariant]:
        """Return the original plus enhanced and high-contrast variants."""
        original = ImageVariant(data=image)
        options = options or PreprocessOptions()

        try:
            img = decode(image)
            if img is None:
                logger.warning("Image not decodable, using original only")
                return [original]
            variants = [
                original,
                self._enhanced(img, options),
                self._high_contrast(img),
            ]
        except Exception as e:
            logger.warning("Preprocessing failed, using original only: %s", e)
            return [original]

        logger.info("Generated %d image variants", len(variants))
        return variants[: self.max_variants]

    def _enhanced(self, img: np.ndarray, options: PreprocessOptions) -> ImageVariant:
        ops: list[str] = []
        if options.target_width:
            img = resize(img, options.target_width)
            ops.append(f"resize:{options.target_width}")
        if options.brighten:
            img = modulate(img, brightness=1.3, saturation=0.8)
            ops.append("modulate")
        if options.grayscale:
            img = grayscale(img)
            ops.append("grayscale")
        if options.enhance_contrast:
            img = equalize(img)
            ops.append("contrast")
        if options.sharpen:
            img = sharpen(img)
            ops.append("sharpen")
        return ImageVariant(data=encode(img), operations=tuple(ops) or ("original",))

    @staticmethod
    def _high_contrast(img: np.ndarray) -> ImageVariant:
        # Recovers faded thermal paper
        img = grayscale(img)
        img = normalize(img)
        img = linear_contrast(img, 1.5, -40)
        img = sharpen(img, sigma=1.5, flat=1.0, jagged=3.0)
        return ImageVariant(
            data=encode(img),
            operations=("grayscale", "normalize", "linear:1.5,-40", "sharpen"),
        )
