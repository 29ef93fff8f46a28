"""Tests for the generation model catalog: discovery, constraints, input shaping."""

from app.generations.models import GenerationKind, GenerationRequest
from app.models.registry import registry


def _video(model="seedance-lite", refs=None, **settings):
    return GenerationRequest(
        model=model,
        prompt="a slow dolly shot",
        kind=GenerationKind.VIDEO,
        reference_images=refs or [],
        model_settings=settings,
    )


def _image(model, refs=None, **settings):
    return GenerationRequest(
        model=model,
        prompt="a red bicycle",
        kind=GenerationKind.IMAGE,
        reference_images=refs or [],
        model_settings=settings,
    )


def test_registry_discovers_all_models():
    ids = {s.model_id for s in registry.list_models()}
    assert ids == {
        "seedance-lite",
        "seedance-pro",
        "nano-banana",
        "seedream-4",
        "gen4-image",
        "gen4-image-turbo",
        "qwen-image",
        "qwen-image-edit",
    }


def test_registry_filters_by_kind():
    video = {s.model_id for s in registry.list_models(kind=GenerationKind.VIDEO)}
    assert video == {"seedance-lite", "seedance-pro"}


def test_seedance_lite_rejects_reference_images_at_1080p():
    errors = registry.get("seedance-lite").validate(
        _video(refs=["https://img/ref.png"], resolution="1080p", image="https://img/start.png")
    )
    assert errors == ["Reference images cannot be used with 1080p resolution in Seedance Lite"]


def test_seedance_lite_accepts_reference_images_at_720p():
    errors = registry.get("seedance-lite").validate(
        _video(refs=["https://img/ref.png"], resolution="720p", image="https://img/start.png")
    )
    assert errors == []


def test_seedance_lite_reference_limit():
    refs = [f"https://img/{i}.png" for i in range(5)]
    errors = registry.get("seedance-lite").validate(_video(refs=refs))
    assert "Seedance Lite supports maximum 4 reference images" in errors


def test_seedance_lite_reference_images_exclude_last_frame():
    errors = registry.get("seedance-lite").validate(_video(
        refs=["https://img/ref.png"], image="https://img/a.png", last_frame_image="https://img/b.png"
    ))
    assert errors == ["Reference images cannot be used with last frame image in Seedance Lite"]


def test_seedance_pro_rejects_reference_images():
    errors = registry.get("seedance-pro").validate(
        _video(model="seedance-pro", refs=["https://img/ref.png"])
    )
    assert errors == ["Seedance Pro does not support reference images"]


def test_last_frame_requires_start_image():
    errors = registry.get("seedance-pro").validate(
        _video(model="seedance-pro", last_frame_image="https://img/b.png")
    )
    assert errors == [
        "Last frame image only works when a start frame image is provided in Seedance Pro"
    ]


def test_blank_prompt_and_kind_mismatch():
    request = GenerationRequest(model="seedance-lite", prompt="  ", kind=GenerationKind.IMAGE)
    errors = registry.get("seedance-lite").validate(request)
    assert "Prompt is required" in errors
    assert "Seedance Lite generates video, not image" in errors


def test_settings_out_of_range_and_unknown_keys():
    errors = registry.get("seedance-lite").validate(_video(duration=30, turbo=True))
    assert any(e.startswith("duration") for e in errors)
    assert any("turbo" in e for e in errors)


def test_camel_case_settings_accepted():
    request = _video(aspectRatio="9:16", cameraFixed=True, image="https://img/a.png")
    model = registry.get("seedance-lite")
    assert model.validate(request) == []
    payload = model.build_input(request)
    assert payload["aspect_ratio"] == "9:16"
    assert payload["camera_fixed"] is True


def test_seedance_lite_input_shape():
    request = _video(
        refs=["https://img/ref.png"], image="https://img/start.png", seed=7, duration=8
    )
    assert registry.get("seedance-lite").build_input(request) == {
        "prompt": "a slow dolly shot",
        "image": "https://img/start.png",
        "duration": 8,
        "resolution": "720p",
        "aspect_ratio": "16:9",
        "fps": 24,
        "camera_fixed": False,
        "seed": 7,
        "reference_images": ["https://img/ref.png"],
    }


def test_seedance_pro_defaults_to_1080p():
    payload = registry.get("seedance-pro").build_input(_video(model="seedance-pro"))
    assert payload["resolution"] == "1080p"
    assert "reference_images" not in payload


def test_nano_banana_input_shape():
    payload = registry.get("nano-banana").build_input(
        _image("nano-banana", refs=["https://img/ref.png"], output_format="png")
    )
    assert payload == {
        "prompt": "a red bicycle",
        "image_input": ["https://img/ref.png"],
        "output_format": "png",
    }


def test_seedream_custom_size_needs_dimensions():
    model = registry.get("seedream-4")
    assert model.validate(_image("seedream-4", size="custom", width=2048)) == [
        "Seedream 4 custom size requires both width and height"
    ]
    assert model.validate(_image("seedream-4", size="custom", width=2048, height=1536)) == []


def test_gen4_reference_tags_must_match_images():
    errors = registry.get("gen4-image").validate(
        _image("gen4-image", refs=["https://img/a.png"], reference_tags=["hero", "villain"])
    )
    assert errors == ["Gen-4 Image needs exactly one reference tag per reference image"]


def test_gen4_turbo_requires_reference_image():
    errors = registry.get("gen4-image-turbo").validate(_image("gen4-image-turbo"))
    assert errors == ["Gen-4 Image Turbo requires at least one reference image"]


def test_qwen_image_rejects_reference_images():
    errors = registry.get("qwen-image").validate(_image("qwen-image", refs=["https://img/a.png"]))
    assert errors == ["Qwen Image does not support reference images"]


def test_qwen_image_edit_requires_source_image():
    model = registry.get("qwen-image-edit")
    assert model.validate(_image("qwen-image-edit")) == ["Qwen Image Edit requires a source image"]
    payload = model.build_input(_image("qwen-image-edit", image="https://img/src.png"))
    assert payload["image"] == "https://img/src.png"
    assert payload["output_format"] == "webp"


def test_metadata_snapshot():
    metadata = registry.get("seedance-lite").build_metadata(
        _video(refs=["https://img/ref.png"], image="https://img/a.png")
    )
    assert metadata["model"] == "bytedance/seedance-1-lite"
    assert metadata["prompt"] == "a slow dolly shot"
    assert metadata["has_reference_images"] is True
    assert metadata["has_last_frame"] is False
    assert metadata["reference_images_count"] == 1
