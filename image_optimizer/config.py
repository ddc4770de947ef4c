import logging
import os
from dataclasses import dataclass


LOGGER_NAME = "image-optimizer"


@dataclass(frozen=True)
class OptimizerSettings:
    port: int
    log_level: str
    default_quality: float
    default_format: str
    filter_mode: str
    webp_effort: int
    jpeg_matte: str
    analysis_size: int
    smart_crop_size: int
    smart_crop_block: int
    grayscale_tolerance: int
    grayscale_ratio: float
    max_upload_bytes: int
    timeout: float
    retries: int

    @classmethod
    def from_env(cls) -> "OptimizerSettings":
        return cls(
            port=int(os.getenv("PORT", "5500")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            default_quality=float(os.getenv("DEFAULT_QUALITY", "0.8")),
            default_format=os.getenv("DEFAULT_FORMAT", "jpeg").lower(),
            filter_mode=os.getenv("FILTER_MODE", "approximate").lower(),
            webp_effort=int(os.getenv("WEBP_EFFORT", "4")),
            jpeg_matte=os.getenv("JPEG_MATTE", "#ffffff"),
            analysis_size=int(os.getenv("ANALYSIS_SIZE", "100")),
            smart_crop_size=int(os.getenv("SMART_CROP_SIZE", "200")),
            smart_crop_block=int(os.getenv("SMART_CROP_BLOCK", "20")),
            grayscale_tolerance=int(os.getenv("GRAYSCALE_TOLERANCE", "10")),
            grayscale_ratio=float(os.getenv("GRAYSCALE_RATIO", "0.9")),
            max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", str(16 * 1024 * 1024))),
            timeout=float(os.getenv("SOURCE_TIMEOUT", "10.0")),
            retries=int(os.getenv("SOURCE_RETRIES", "2")),
        )


SETTINGS = OptimizerSettings.from_env()


def configure_logging() -> logging.Logger:
    logging.basicConfig(level=SETTINGS.log_level)
    return logging.getLogger(LOGGER_NAME)
