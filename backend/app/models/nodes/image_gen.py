"""Text-to-image nodes."""

from __future__ import annotations

from app.models.node_definition import NodeDefinition
from app.models.nodes.common import (
    IMAGE_SIZES,
    IMAGEN_ASPECT_RATIOS,
    NUM_IMAGES,
    negative_prompt_param,
    port,
    prompt_param,
    seed_param,
    select_param,
    slider_param,
)

_PROMPT_IN = port("prompt", "Prompt", "text")
_IMAGE_OUT = port("image", "Image", "image")


def _imagen(node_id: str, label: str, description: str, model: str, cost: int, color: str) -> NodeDefinition:
    return NodeDefinition(
        id=node_id,
        label=label,
        description=description,
        category="image-gen",
        color=color,
        inputs=[_PROMPT_IN],
        outputs=[_IMAGE_OUT],
        parameters=[
            prompt_param(placeholder="Describe the image you want to generate..."),
            select_param("aspectRatio", "Aspect Ratio", "1:1", IMAGEN_ASPECT_RATIOS),
            select_param("sampleCount", "Number of Images", "1", NUM_IMAGES),
        ],
        credit_cost=cost,
        provider="gemini",
        provider_model=model,
        tags=["imagen", "google", "gemini", "text-to-image"],
    )


IMAGE_GEN_NODES: list[NodeDefinition] = [
    NodeDefinition(
        id="flux-pro",
        label="Flux Pro",
        description="High-quality image generation with Flux Pro 1.1",
        category="image-gen",
        color="#7C3AED",
        inputs=[_PROMPT_IN],
        outputs=[_IMAGE_OUT],
        parameters=[
            prompt_param(placeholder="Describe the image you want to create..."),
            negative_prompt_param(),
            select_param("image_size", "Image Size", "landscape_4_3", IMAGE_SIZES),
            slider_param("num_inference_steps", "Steps", 28, 1, 50, 1),
            slider_param("guidance_scale", "Guidance Scale", 3.5, 1, 20, 0.5),
            seed_param(),
            select_param("num_images", "Number of Images", "1", NUM_IMAGES),
        ],
        credit_cost=4,
        provider="fal",
        provider_model="fal-ai/flux-pro/v1.1",
        tags=["flux", "text-to-image", "premium"],
    ),
    NodeDefinition(
        id="flux-dev",
        label="Flux Dev",
        description="Fast image generation with Flux Dev, great for iteration",
        category="image-gen",
        color="#6D28D9",
        inputs=[_PROMPT_IN, port("image", "Reference Image", "image")],
        outputs=[_IMAGE_OUT],
        parameters=[
            prompt_param(placeholder="Describe the image..."),
            select_param("image_size", "Image Size", "landscape_4_3", IMAGE_SIZES),
            slider_param("num_inference_steps", "Steps", 28, 1, 50),
            slider_param("guidance_scale", "Guidance Scale", 3.5, 1, 20, 0.5),
            seed_param(),
        ],
        credit_cost=2,
        provider="fal",
        provider_model="fal-ai/flux/dev",
        tags=["flux", "text-to-image", "fast"],
    ),
    NodeDefinition(
        id="flux-schnell",
        label="Flux Schnell",
        description="Ultra-fast image generation, best for prototyping",
        category="image-gen",
        color="#5B21B6",
        inputs=[_PROMPT_IN],
        outputs=[_IMAGE_OUT],
        parameters=[
            prompt_param(placeholder="Describe the image..."),
            select_param("image_size", "Image Size", "landscape_4_3", IMAGE_SIZES),
            slider_param("num_inference_steps", "Steps", 4, 1, 12),
            seed_param(),
            select_param("num_images", "Number of Images", "1", NUM_IMAGES),
        ],
        credit_cost=1,
        provider="fal",
        provider_model="fal-ai/flux/schnell",
        tags=["flux", "text-to-image", "fast", "cheap"],
    ),
    NodeDefinition(
        id="ideogram-v3",
        label="Ideogram V3",
        description="Best-in-class text rendering in images",
        category="image-gen",
        color="#DC2626",
        inputs=[_PROMPT_IN],
        outputs=[_IMAGE_OUT],
        parameters=[
            prompt_param(placeholder="Describe your image, include text you want rendered..."),
            negative_prompt_param(),
            select_param("image_size", "Image Size", "square_hd", IMAGE_SIZES),
            select_param(
                "style",
                "Style",
                "AUTO",
                [("Auto", "AUTO"), ("General", "GENERAL"), ("Realistic", "REALISTIC"), ("Design", "DESIGN")],
            ),
            select_param(
                "rendering_speed",
                "Quality",
                "BALANCED",
                [("Turbo (fast)", "TURBO"), ("Balanced", "BALANCED"), ("Quality (best)", "QUALITY")],
            ),
            seed_param(),
        ],
        credit_cost=6,
        provider="fal",
        provider_model="fal-ai/ideogram/v3",
        tags=["ideogram", "text-rendering", "design"],
    ),
    NodeDefinition(
        id="dalle-3",
        label="DALL·E 3",
        description="OpenAI's DALL-E 3, follows prompts extremely well",
        category="image-gen",
        color="#059669",
        inputs=[_PROMPT_IN],
        outputs=[_IMAGE_OUT],
        parameters=[
            prompt_param(placeholder="Describe the image..."),
            select_param(
                "size",
                "Size",
                "1024x1024",
                [
                    ("1024×1024 (Square)", "1024x1024"),
                    ("1792×1024 (Landscape)", "1792x1024"),
                    ("1024×1792 (Portrait)", "1024x1792"),
                ],
            ),
            select_param("quality", "Quality", "standard", [("Standard", "standard"), ("HD", "hd")]),
            select_param("style", "Style", "vivid", [("Vivid", "vivid"), ("Natural", "natural")]),
        ],
        credit_cost=8,
        provider="openai",
        provider_model="dall-e-3",
        tags=["openai", "text-to-image"],
    ),
    NodeDefinition(
        id="recraft-v3",
        label="Recraft V3",
        description="State-of-the-art image generation with style control",
        category="image-gen",
        color="#0891B2",
        inputs=[_PROMPT_IN],
        outputs=[_IMAGE_OUT],
        parameters=[
            prompt_param(),
            select_param(
                "style",
                "Style",
                "realistic_image",
                [
                    ("Realistic Image", "realistic_image"),
                    ("Digital Illustration", "digital_illustration"),
                    ("Vector Illustration", "vector_illustration"),
                    ("Realistic Image (B&W)", "realistic_image/b_and_w"),
                    ("Realistic Image (Hard Flash)", "realistic_image/hard_flash"),
                ],
            ),
            select_param("image_size", "Image Size", "landscape_16_9", IMAGE_SIZES),
        ],
        credit_cost=4,
        provider="fal",
        provider_model="fal-ai/recraft-v3",
        tags=["recraft", "text-to-image", "style"],
    ),
    _imagen(
        "imagen-4-flash",
        "Imagen 4 Flash",
        "Google Imagen 4, fast, high-quality image generation via Gemini API",
        "imagen-4.0-fast-generate-001",
        3,
        "#1A73E8",
    ),
    _imagen(
        "imagen-4",
        "Imagen 4",
        "Google Imagen 4, premium quality image generation via Gemini API",
        "imagen-4.0-generate-001",
        5,
        "#1565C0",
    ),
]
