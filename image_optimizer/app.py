from __future__ import annotations

from typing import Dict, List

from flask import Flask, jsonify, request
from PIL import features

from .config import SETTINGS, OptimizerSettings, configure_logging
from .errors import DecodeError, FetchError, ImagePipelineError
from .infrastructure.network import FETCHER, SourceFetcher
from .models import ImageInput, OptimizationOptions
from .presets import OPTIMIZATION_PRESETS, RESPONSIVE_BREAKPOINTS, preset_options
from .processing.analysis import analyze
from .processing.pipeline import (
    batch_process,
    generate_responsive_variants,
    load_input,
    optimize_image,
    process_variants,
)
from .processing.placeholder import blur_placeholder, color_placeholder
from .responses import describe_with_data, send_image
from .validation import VALIDATION_CONFIGS, validate_image, validate_images

APP_VERSION = "1.0.0"


class InvalidRequest(ValueError):
    pass


def _as_bool(value: str) -> bool:
    return value.lower() in ("1", "true", "yes", "on")


# Request field -> (options field, coercion)
_OPTION_FIELDS: Dict[str, tuple] = {
    "quality": ("quality", float),
    "width": ("max_width", int),
    "height": ("max_height", int),
    "format": ("format", str.lower),
    "fit": ("fit", str.lower),
    "position": ("position", str),
    "background": ("background", str),
    "blur": ("blur", float),
    "sharpen": ("sharpen", float),
    "gamma": ("gamma", float),
    "effort": ("effort", int),
    "lossless": ("lossless", _as_bool),
    "progressive": ("progressive", _as_bool),
}


def options_from_args(args, settings: OptimizerSettings = SETTINGS) -> OptimizationOptions:
    """Build options from a preset name plus explicit overrides in ``args``."""
    overrides = {}
    for name, (field_name, coerce) in _OPTION_FIELDS.items():
        raw = args.get(name)
        if raw is None or raw == "":
            continue
        try:
            overrides[field_name] = coerce(raw)
        except ValueError:
            raise InvalidRequest(f"Invalid value for {name}: {raw!r}") from None

    preset = args.get("preset")
    try:
        if preset:
            return preset_options(preset, **overrides)
        base = {"quality": settings.default_quality, "format": settings.default_format}
        base.update(overrides)
        return OptimizationOptions(**base)
    except KeyError as exc:
        raise InvalidRequest(str(exc.args[0])) from None
    except ValueError as exc:
        raise InvalidRequest(str(exc)) from None


def _int_list(raw: str) -> List[int]:
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise InvalidRequest(f"Expected a comma separated list of integers, got {raw!r}") from None


def create_app(
    fetcher: SourceFetcher = FETCHER,
    settings: OptimizerSettings = SETTINGS,
) -> Flask:
    log = configure_logging()
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_bytes

    def read_upload() -> ImageInput:
        upload = request.files.get("file")
        if upload is not None:
            return ImageInput(
                data=upload.read(),
                filename=upload.filename or "image",
                mime_type=upload.mimetype,
            )
        url = request.values.get("url")
        if url:
            return fetcher.fetch(url)
        raise InvalidRequest("Provide an uploaded 'file' or a 'url'")

    def read_uploads() -> List[ImageInput]:
        return [
            ImageInput(data=upload.read(), filename=upload.filename or "image", mime_type=upload.mimetype)
            for upload in request.files.getlist("files")
        ]

    def validation_config(default: str = "general"):
        name = request.values.get("validate") or default
        try:
            return VALIDATION_CONFIGS[name]
        except KeyError:
            raise InvalidRequest(f"Unknown validation config: {name}") from None

    @app.errorhandler(InvalidRequest)
    def invalid_request(exc: InvalidRequest):
        return jsonify(error=str(exc)), 400

    @app.errorhandler(ImagePipelineError)
    def pipeline_error(exc: ImagePipelineError):
        status = 400 if isinstance(exc, DecodeError) else 422
        return jsonify(exc.to_dict()), status

    @app.errorhandler(FetchError)
    def fetch_error(exc: FetchError):
        return jsonify(error=str(exc)), 502

    @app.route("/health")
    def health():
        return jsonify(
            ok=True,
            version=APP_VERSION,
            webp=features.check("webp"),
            filter_mode=settings.filter_mode,
        )

    @app.route("/presets")
    def presets():
        return jsonify({name: options.to_dict() for name, options in OPTIMIZATION_PRESETS.items()})

    @app.route("/optimize", methods=["POST"])
    def optimize():
        options = options_from_args(request.values, settings)
        upload = read_upload()
        if request.values.get("validate"):
            result = validate_image(upload, validation_config())
            if not result.is_valid:
                return jsonify(result.to_dict()), 400
        return send_image(optimize_image(upload, options, settings))

    @app.route("/variants", methods=["POST"])
    def variants():
        names = request.values.get("presets")
        selected = [name.strip() for name in names.split(",")] if names else list(OPTIMIZATION_PRESETS)
        try:
            requested = {name: preset_options(name) for name in selected}
        except KeyError as exc:
            raise InvalidRequest(str(exc.args[0])) from None

        result = process_variants(read_upload(), requested, settings)
        return jsonify(
            variants={name: describe_with_data(image) for name, image in result.variants.items()},
            errors={name: error.to_dict() for name, error in result.errors.items()},
        )

    @app.route("/responsive", methods=["POST"])
    def responsive():
        raw = request.values.get("breakpoints")
        breakpoints = _int_list(raw) if raw else list(RESPONSIVE_BREAKPOINTS)
        result = generate_responsive_variants(read_upload(), breakpoints, settings=settings)
        return jsonify(
            variants={name: describe_with_data(image) for name, image in result.variants.items()},
            errors={name: error.to_dict() for name, error in result.errors.items()},
        )

    @app.route("/analyze", methods=["POST"])
    def analyze_view():
        with load_input(read_upload()) as source:
            analysis = analyze(source, settings)
            blur = blur_placeholder(source)
            width, height = source.size
        dominant = analysis.hex_colors[0] if analysis.dominant_colors else "#f3f4f6"
        payload = analysis.to_dict()
        payload["width"] = width
        payload["height"] = height
        payload["placeholders"] = {
            "blur": blur,
            "color": color_placeholder(dominant, width=10, height=10),
        }
        return jsonify(payload)

    @app.route("/batch", methods=["POST"])
    def batch():
        uploads = read_uploads()
        if not uploads:
            raise InvalidRequest("Upload one or more 'files'")
        options = options_from_args(request.values, settings)

        def progress(percent: float, label: str) -> None:
            log.info("Batch progress %.0f%% %s", percent, label)

        results = batch_process(uploads, options, progress, settings)
        return jsonify(
            results=[describe_with_data(image) for image in results],
            failed=len(uploads) - len(results),
        )

    @app.route("/validate", methods=["POST"])
    def validate():
        result = validate_images(read_uploads(), validation_config())
        return jsonify(result.to_dict()), 200 if result.is_valid else 400

    return app


# Module-level application for WSGI servers (``image_optimizer.app:app``).
app = create_app()
application = app
