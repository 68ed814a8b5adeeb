"""Parameter and port builders shared by the node catalogue modules."""

from __future__ import annotations

from app.models.node_definition import (
    NodePort,
    NumberParam,
    SelectOption,
    SelectParam,
    SliderParam,
    TextParam,
)


def port(port_id: str, label: str, port_type: str, required: bool = False) -> NodePort:
    return NodePort(id=port_id, label=label, type=port_type, required=required)


def prompt_param(
    label: str = "Prompt",
    placeholder: str | None = None,
    required: bool = True,
) -> TextParam:
    return TextParam(
        id="prompt",
        label=label,
        multiline=True,
        required=required,
        placeholder=placeholder,
    )


def negative_prompt_param(default: str | None = None) -> TextParam:
    return TextParam(
        id="negative_prompt",
        label="Negative Prompt",
        multiline=True,
        default=default,
    )


def seed_param() -> NumberParam:
    return NumberParam(id="seed", label="Seed", default=-1, description="-1 for random")


def select_param(
    param_id: str,
    label: str,
    default: str,
    options: list[tuple[str, str]],
) -> SelectParam:
    return SelectParam(
        id=param_id,
        label=label,
        default=default,
        options=[SelectOption(label=opt_label, value=value) for opt_label, value in options],
    )


def slider_param(
    param_id: str,
    label: str,
    default: float,
    min_value: float,
    max_value: float,
    step: float | None = None,
) -> SliderParam:
    return SliderParam(
        id=param_id,
        label=label,
        default=default,
        min=min_value,
        max=max_value,
        step=step,
    )


IMAGE_SIZES = [
    ("Square (1:1)", "square"),
    ("Square HD", "square_hd"),
    ("Portrait 3:4", "portrait_4_3"),
    ("Portrait 9:16", "portrait_16_9"),
    ("Landscape 4:3", "landscape_4_3"),
    ("Landscape 16:9", "landscape_16_9"),
]

NUM_IMAGES = [("1", "1"), ("2", "2"), ("4", "4")]

VIDEO_DURATIONS = [("5 seconds", "5"), ("10 seconds", "10")]

VIDEO_ASPECT_RATIOS = [
    ("16:9 (Landscape)", "16:9"),
    ("9:16 (Portrait)", "9:16"),
    ("1:1 (Square)", "1:1"),
]

IMAGEN_ASPECT_RATIOS = [
    ("Square (1:1)", "1:1"),
    ("Landscape (16:9)", "16:9"),
    ("Portrait (9:16)", "9:16"),
    ("Landscape (4:3)", "4:3"),
    ("Portrait (3:4)", "3:4"),
]
