"""
Node definition models: static metadata describing a node type.

A definition declares the node's typed ports, its parameter schema, which
provider fulfils it and how many credits one successful run costs. The
parameter schema is a tagged union on ``type`` so that the resolver and the
provider adapters can coerce values according to the declared kind instead
of guessing from the runtime value.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


NodeCategory = Literal[
    "image-gen",
    "video-gen",
    "image-edit",
    "video-edit",
    "audio",
    "3d",
    "lipsync",
    "vector",
    "text",
    "data",
    "helper",
]

PortType = Literal[
    "image", "video", "audio", "text", "number", "boolean", "seed", "lora", "3d", "any"
]

ProviderName = Literal["internal", "fal", "openai", "gemini", "replicate"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NodePort(_CamelModel):
    id: str
    label: str
    type: PortType
    required: bool = False
    description: str | None = None


class _ParameterBase(_CamelModel):
    id: str
    label: str
    description: str | None = None
    required: bool = False


class TextParam(_ParameterBase):
    type: Literal["text"] = "text"
    default: str | None = None
    placeholder: str | None = None
    multiline: bool = False


class NumberParam(_ParameterBase):
    type: Literal["number"] = "number"
    default: float | int | None = None
    min: float | int | None = None
    max: float | int | None = None
    step: float | int | None = None


class SelectOption(BaseModel):
    label: str
    value: str


class SelectParam(_ParameterBase):
    type: Literal["select"] = "select"
    options: list[SelectOption]
    default: str | None = None


class BooleanParam(_ParameterBase):
    type: Literal["boolean"] = "boolean"
    default: bool | None = None


class SliderParam(_ParameterBase):
    type: Literal["slider"] = "slider"
    default: float | int | None = None
    min: float | int
    max: float | int
    step: float | int | None = None


class FileParam(_ParameterBase):
    type: Literal["file"] = "file"
    accept: str | None = None
    placeholder: str | None = None


NodeParameter = Annotated[
    Union[TextParam, NumberParam, SelectParam, BooleanParam, SliderParam, FileParam],
    Field(discriminator="type"),
]


class NodeDefinition(_CamelModel):
    id: str
    label: str
    description: str = ""
    category: NodeCategory
    color: str = "#1F2937"
    inputs: list[NodePort] = Field(default_factory=list)
    outputs: list[NodePort] = Field(default_factory=list)
    parameters: list[NodeParameter] = Field(default_factory=list)
    credit_cost: int = Field(default=0, ge=0)
    provider: ProviderName
    provider_model: str
    tags: list[str] = Field(default_factory=list)

    def parameter(self, param_id: str) -> NodeParameter | None:
        return next((p for p in self.parameters if p.id == param_id), None)

    def input_port(self, port_id: str) -> NodePort | None:
        return next((p for p in self.inputs if p.id == port_id), None)

    def output_port(self, port_id: str) -> NodePort | None:
        return next((p for p in self.outputs if p.id == port_id), None)

    def parameter_defaults(self) -> dict[str, Any]:
        """Declared defaults, keyed by parameter id (parameters without one are omitted)."""
        defaults: dict[str, Any] = {}
        for param in self.parameters:
            default = getattr(param, "default", None)
            if default is not None:
                defaults[param.id] = default
        return defaults

    def declares_text(self, key: str) -> bool:
        """True when ``key`` is a text parameter or a text-typed input port."""
        param = self.parameter(key)
        if param is not None:
            return param.type == "text"
        port = self.input_port(key)
        return port is not None and port.type == "text"
