"""Helper, data and text nodes."""

from __future__ import annotations

from app.models.node_definition import FileParam, NodeDefinition, NumberParam, TextParam
from app.models.nodes.common import port, select_param

HELPER_NODES: list[NodeDefinition] = [
    NodeDefinition(
        id="text-input",
        label="Text",
        description="A text value to use as input to other nodes",
        category="data",
        color="#374151",
        outputs=[port("text", "Text", "text")],
        parameters=[
            TextParam(id="value", label="Text", multiline=True, placeholder="Enter text..."),
        ],
        credit_cost=0,
        provider="internal",
        provider_model="internal/text",
        tags=["helper", "input"],
    ),
    NodeDefinition(
        id="number-input",
        label="Number",
        description="A numeric value",
        category="data",
        color="#374151",
        outputs=[port("number", "Number", "number")],
        parameters=[NumberParam(id="value", label="Value", default=0)],
        credit_cost=0,
        provider="internal",
        provider_model="internal/number",
        tags=["helper", "input"],
    ),
    NodeDefinition(
        id="seed-input",
        label="Seed",
        description="A seed value for reproducible generation",
        category="data",
        color="#374151",
        outputs=[port("seed", "Seed", "seed")],
        parameters=[NumberParam(id="value", label="Seed (-1 = random)", default=-1)],
        credit_cost=0,
        provider="internal",
        provider_model="internal/seed",
        tags=["helper", "seed"],
    ),
    NodeDefinition(
        id="import",
        label="Import",
        description="Import an image, video or audio from file or URL",
        category="helper",
        outputs=[
            port("image", "Image", "image"),
            port("video", "Video", "video"),
            port("audio", "Audio", "audio"),
        ],
        parameters=[
            FileParam(
                id="url",
                label="File or URL",
                accept="image/*,video/*,audio/*",
                placeholder="https://...",
            ),
        ],
        credit_cost=0,
        provider="internal",
        provider_model="internal/import",
        tags=["helper", "import", "input"],
    ),
    NodeDefinition(
        id="export",
        label="Export",
        description="Export/download the final output",
        category="helper",
        inputs=[
            port("image", "Image", "image"),
            port("video", "Video", "video"),
            port("audio", "Audio", "audio"),
        ],
        parameters=[
            TextParam(id="filename", label="Filename", placeholder="output"),
            select_param(
                "format",
                "Format",
                "png",
                [("PNG", "png"), ("JPEG", "jpg"), ("WebP", "webp"), ("MP4", "mp4")],
            ),
        ],
        credit_cost=0,
        provider="internal",
        provider_model="internal/export",
        tags=["helper", "export", "output"],
    ),
    NodeDefinition(
        id="preview",
        label="Preview",
        description="Preview any media inline on the canvas",
        category="helper",
        color="#111827",
        inputs=[port("media", "Media", "any", required=True)],
        # Re-exposing the media on an output port is what lets subscribers render it.
        outputs=[port("media", "Preview", "any")],
        credit_cost=0,
        provider="internal",
        provider_model="internal/preview",
        tags=["helper", "preview"],
    ),
    NodeDefinition(
        id="prompt-enhancer",
        label="Prompt Enhancer",
        description="Use GPT-4o to improve and expand a prompt",
        category="text",
        color="#065F46",
        inputs=[port("text", "Raw Prompt", "text", required=True)],
        outputs=[port("text", "Enhanced Prompt", "text")],
        parameters=[
            select_param(
                "style",
                "Enhancement Style",
                "detailed",
                [
                    ("Detailed", "detailed"),
                    ("Cinematic", "cinematic"),
                    ("Artistic", "artistic"),
                    ("Photography", "photography"),
                    ("Minimal", "minimal"),
                ],
            ),
        ],
        credit_cost=1,
        provider="openai",
        provider_model="gpt-4o-mini",
        tags=["text", "prompt", "llm"],
    ),
    NodeDefinition(
        id="image-describer",
        label="Image Describer",
        description="Generate a text description of an image using GPT-4o Vision",
        category="text",
        color="#064E3B",
        inputs=[port("image", "Image", "image", required=True)],
        outputs=[port("text", "Description", "text")],
        parameters=[
            select_param(
                "style",
                "Description Style",
                "prompt",
                [
                    ("As image prompt", "prompt"),
                    ("Descriptive", "descriptive"),
                    ("Technical", "technical"),
                ],
            ),
        ],
        credit_cost=2,
        provider="openai",
        provider_model="gpt-4o",
        tags=["text", "vision", "llm"],
    ),
    NodeDefinition(
        id="text-iterator",
        label="Text Iterator",
        description="Batch run a workflow for each item in a text list",
        category="data",
        color="#1E3A5F",
        outputs=[port("text", "Current Text", "text")],
        parameters=[
            TextParam(
                id="items",
                label="Items (one per line)",
                multiline=True,
                placeholder="a cat in space\na dog on the moon\na robot in a forest",
            ),
        ],
        credit_cost=0,
        provider="internal",
        provider_model="internal/text-iterator",
        tags=["iterator", "batch", "data"],
    ),
]
