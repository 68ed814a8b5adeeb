"""Image editing nodes (all served by fal)."""

from __future__ import annotations

from app.models.node_definition import NodeDefinition, NumberParam
from app.models.nodes.common import (
    negative_prompt_param,
    port,
    prompt_param,
    seed_param,
    select_param,
    slider_param,
)


def _expand(side: str, label: str, default: int) -> NumberParam:
    return NumberParam(id=f"expand_{side}", label=label, default=default, min=0, max=1024)


IMAGE_EDIT_NODES: list[NodeDefinition] = [
    NodeDefinition(
        id="background-remover",
        label="Background Remover",
        description="Remove background from images with AI precision",
        category="image-edit",
        color="#0369A1",
        inputs=[port("image", "Input Image", "image", required=True)],
        outputs=[port("image", "Image (no bg)", "image")],
        parameters=[
            select_param(
                "model",
                "Model",
                "bria",
                [("Bria RMBG (Best Quality)", "bria"), ("BiRefNet (Fast)", "birefnet")],
            ),
        ],
        credit_cost=2,
        provider="fal",
        provider_model="fal-ai/bria/background/remove",
        tags=["background", "remove", "edit"],
    ),
    NodeDefinition(
        id="image-upscaler",
        label="Image Upscaler",
        description="Upscale images up to 4x with AI enhancement",
        category="image-edit",
        color="#0284C7",
        inputs=[port("image", "Input Image", "image", required=True)],
        outputs=[port("image", "Upscaled Image", "image")],
        parameters=[
            select_param(
                "model",
                "Upscale Model",
                "esrgan",
                [
                    ("Real-ESRGAN (General)", "esrgan"),
                    ("Real-ESRGAN (Anime)", "esrgan-anime"),
                    ("Clarity Upscaler", "clarity"),
                ],
            ),
            select_param("scale", "Scale Factor", "2", [("2x", "2"), ("4x", "4")]),
        ],
        credit_cost=3,
        provider="fal",
        provider_model="fal-ai/esrgan",
        tags=["upscale", "enhance", "edit"],
    ),
    NodeDefinition(
        id="inpainting",
        label="Inpainting",
        description="Fill masked regions of an image with AI-generated content",
        category="image-edit",
        color="#0891B2",
        inputs=[
            port("prompt", "Prompt", "text"),
            port("image", "Input Image", "image", required=True),
            port("mask", "Mask", "image", required=True),
        ],
        outputs=[port("image", "Result Image", "image")],
        parameters=[
            prompt_param(placeholder="What to fill in the masked area..."),
            negative_prompt_param(),
            slider_param("num_inference_steps", "Steps", 28, 10, 50),
            slider_param("guidance_scale", "Guidance Scale", 7.5, 1, 20, 0.5),
            seed_param(),
        ],
        credit_cost=3,
        provider="fal",
        provider_model="fal-ai/flux/dev/image-to-image",
        tags=["inpainting", "edit", "fill"],
    ),
    NodeDefinition(
        id="outpainting",
        label="Outpainting / Expand",
        description="Extend the borders of an image with AI-generated content",
        category="image-edit",
        color="#0E7490",
        inputs=[
            port("prompt", "Prompt", "text"),
            port("image", "Input Image", "image", required=True),
        ],
        outputs=[port("image", "Expanded Image", "image")],
        parameters=[
            prompt_param(placeholder="Describe what to add beyond the edges...", required=False),
            _expand("left", "Expand Left (px)", 256),
            _expand("right", "Expand Right (px)", 256),
            _expand("top", "Expand Top (px)", 0),
            _expand("bottom", "Expand Bottom (px)", 0),
            seed_param(),
        ],
        credit_cost=4,
        provider="fal",
        provider_model="fal-ai/flux-lora/outpainting",
        tags=["outpainting", "expand", "edit"],
    ),
    NodeDefinition(
        id="image-to-image",
        label="Image to Image",
        description="Transform an existing image guided by a prompt",
        category="image-edit",
        color="#1D4ED8",
        inputs=[
            port("prompt", "Prompt", "text"),
            port("image", "Input Image", "image", required=True),
        ],
        outputs=[port("image", "Output Image", "image")],
        parameters=[
            prompt_param(placeholder="Describe the transformation..."),
            slider_param("strength", "Strength", 0.75, 0.1, 1, 0.05),
            slider_param("num_inference_steps", "Steps", 28, 10, 50),
            slider_param("guidance_scale", "Guidance Scale", 3.5, 1, 20, 0.5),
            seed_param(),
        ],
        credit_cost=3,
        provider="fal",
        provider_model="fal-ai/flux/dev/image-to-image",
        tags=["img2img", "transform", "edit"],
    ),
]
