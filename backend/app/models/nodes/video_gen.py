"""Video generation nodes (all served by fal)."""

from __future__ import annotations

from app.models.node_definition import BooleanParam, NodeDefinition, NumberParam
from app.models.nodes.common import (
    VIDEO_ASPECT_RATIOS,
    VIDEO_DURATIONS,
    negative_prompt_param,
    port,
    prompt_param,
    seed_param,
    select_param,
    slider_param,
)

_VIDEO_OUT = port("video", "Video", "video")

_WAN_FRAMES = [("~3 sec (81 frames)", "81"), ("~5 sec (121 frames)", "121")]
_WAN_RESOLUTIONS = [("480p", "480p"), ("720p", "720p")]


def _kling_params(
    placeholder: str,
    *,
    negative: bool = True,
    audio: bool = False,
    seed: bool = False,
    prompt_label: str = "Prompt",
) -> list:
    params: list = [prompt_param(label=prompt_label, placeholder=placeholder)]
    if negative:
        params.append(negative_prompt_param())
    params.append(select_param("duration", "Duration", "5", VIDEO_DURATIONS))
    params.append(select_param("aspect_ratio", "Aspect Ratio", "16:9", VIDEO_ASPECT_RATIOS))
    if audio:
        params.append(BooleanParam(id="generate_audio", label="Generate Audio", default=False))
    params.append(slider_param("cfg_scale", "Guidance Scale", 0.5, 0, 1, 0.1))
    if seed:
        params.append(seed_param())
    return params


def _wan_params(placeholder: str) -> list:
    return [
        prompt_param(placeholder=placeholder),
        negative_prompt_param(),
        select_param("num_frames", "Duration (frames)", "81", _WAN_FRAMES),
        select_param("resolution", "Resolution", "480p", _WAN_RESOLUTIONS),
        seed_param(),
    ]


VIDEO_GEN_NODES: list[NodeDefinition] = [
    NodeDefinition(
        id="kling-v3",
        label="Kling v3",
        description="Latest Kling v3, text to video with native audio generation",
        category="video-gen",
        color="#EA580C",
        inputs=[port("prompt", "Prompt", "text")],
        outputs=[_VIDEO_OUT],
        parameters=_kling_params("Describe the video scene...", audio=True),
        credit_cost=40,
        provider="fal",
        provider_model="fal-ai/kling-video/v3/standard/text-to-video",
        tags=["kling", "video", "text-to-video", "v3"],
    ),
    NodeDefinition(
        id="kling-v3-i2v",
        label="Kling v3 (Image→Video)",
        description="Latest Kling v3, animate an image with native audio support",
        category="video-gen",
        color="#C2410C",
        inputs=[
            port("prompt", "Motion Prompt", "text"),
            port("image", "Start Image", "image", required=True),
        ],
        outputs=[_VIDEO_OUT],
        parameters=_kling_params(
            "Describe how the image should animate...",
            negative=False,
            audio=True,
            prompt_label="Motion Prompt",
        ),
        credit_cost=40,
        provider="fal",
        provider_model="fal-ai/kling-video/v3/standard/image-to-video",
        tags=["kling", "video", "image-to-video", "v3"],
    ),
    NodeDefinition(
        id="kling-2-5",
        label="Kling Standard",
        description="High-quality video generation, text to video",
        category="video-gen",
        color="#EA580C",
        inputs=[port("prompt", "Prompt", "text"), port("image", "Start Image", "image")],
        outputs=[_VIDEO_OUT],
        parameters=_kling_params("Describe the video motion and scene...", seed=True),
        credit_cost=40,
        provider="fal",
        provider_model="fal-ai/kling-video/v1.6/standard/text-to-video",
        tags=["kling", "video", "text-to-video"],
    ),
    NodeDefinition(
        id="kling-2-5-i2v",
        label="Kling (Image→Video)",
        description="Animate a still image into a video with Kling 2.1",
        category="video-gen",
        color="#C2410C",
        inputs=[
            port("prompt", "Motion Prompt", "text"),
            port("image", "Source Image", "image", required=True),
        ],
        outputs=[_VIDEO_OUT],
        parameters=_kling_params(
            "Describe how the image should animate...",
            negative=False,
            prompt_label="Motion Prompt",
        ),
        credit_cost=40,
        provider="fal",
        provider_model="fal-ai/kling-video/v1.6/pro/image-to-video",
        tags=["kling", "video", "image-to-video"],
    ),
    NodeDefinition(
        id="kling-2-5-pro",
        label="Kling Pro",
        description="Highest-quality Kling video generation, pro tier",
        category="video-gen",
        color="#9A3412",
        inputs=[port("prompt", "Prompt", "text"), port("image", "Reference Image", "image")],
        outputs=[_VIDEO_OUT],
        parameters=_kling_params("Describe the video scene in detail..."),
        credit_cost=50,
        provider="fal",
        provider_model="fal-ai/kling-video/v1.6/pro/text-to-video",
        tags=["kling", "video", "text-to-video", "premium"],
    ),
    NodeDefinition(
        id="wan-2-2",
        label="Wan 2.2",
        description="Cost-effective video generation by Alibaba",
        category="video-gen",
        color="#B45309",
        inputs=[port("prompt", "Prompt", "text"), port("image", "Reference Image", "image")],
        outputs=[_VIDEO_OUT],
        parameters=_wan_params("Describe the video..."),
        credit_cost=24,
        provider="fal",
        provider_model="fal-ai/wan/v2.2-a14b/text-to-video",
        tags=["wan", "video", "budget"],
    ),
    NodeDefinition(
        id="wan-2-2-i2v",
        label="Wan 2.2 (Image→Video)",
        description="Animate a still image into a video with Wan 2.2",
        category="video-gen",
        color="#92400E",
        inputs=[
            port("prompt", "Prompt", "text"),
            port("image", "Source Image", "image", required=True),
        ],
        outputs=[_VIDEO_OUT],
        parameters=_wan_params("Describe the motion and animation..."),
        credit_cost=24,
        provider="fal",
        provider_model="fal-ai/wan/v2.2-a14b/image-to-video",
        tags=["wan", "video", "image-to-video"],
    ),
    NodeDefinition(
        id="ltx-video",
        label="LTX Video",
        description="Real-time capable video generation",
        category="video-gen",
        color="#7E22CE",
        inputs=[port("prompt", "Prompt", "text"), port("image", "Start Image", "image")],
        outputs=[_VIDEO_OUT],
        parameters=[
            prompt_param(),
            negative_prompt_param(default="worst quality, inconsistent motion, blurry, jittery"),
            slider_param("num_frames", "Frames", 121, 25, 257, 8),
            NumberParam(id="width", label="Width", default=768),
            NumberParam(id="height", label="Height", default=512),
            seed_param(),
        ],
        credit_cost=20,
        provider="fal",
        provider_model="fal-ai/ltx-video",
        tags=["ltx", "video", "fast"],
    ),
]
