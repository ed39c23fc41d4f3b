"""Assistant contracts: method name -> prompt template + return shape."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from assistant_kit.output.shapes import RecordShape, ValueKind
from assistant_kit.prompt.template import template_variables

RESERVED_PARAMETERS = frozenset({"session_id"})


class MethodSpec(BaseModel):
    """One assistant method.

    `parameters` lists the call arguments in positional order. When omitted
    it is taken from the template's placeholders in order of appearance.
    Either way placeholders and parameters must match one to one.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, pattern=r"^[A-Za-z_]\w*$")
    template: str
    parameters: tuple[str, ...] = ()
    return_shape: ValueKind | RecordShape = ValueKind.TEXT
    retrieval_augmented: bool = False
    memory_aware: bool = False
    description: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_parameters(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("parameters") and "template" in data:
            data = {**data, "parameters": tuple(template_variables(data["template"]))}
        return data

    @model_validator(mode="after")
    def _check_parameters(self) -> "MethodSpec":
        if self.name.startswith("_"):
            raise ValueError(f"Method names cannot start with an underscore: {self.name}")
        if len(set(self.parameters)) != len(self.parameters):
            raise ValueError(f"Duplicate parameters in method {self.name}")
        reserved = RESERVED_PARAMETERS & set(self.parameters)
        if reserved:
            raise ValueError(f"Reserved parameter names in {self.name}: {sorted(reserved)}")
        placeholders = set(template_variables(self.template))
        if placeholders != set(self.parameters):
            raise ValueError(
                f"Template placeholders {sorted(placeholders)} do not match "
                f"parameters {list(self.parameters)} in method {self.name}"
            )
        return self


class AssistantContract(Mapping[str, MethodSpec]):
    """An immutable, named set of method specs."""

    def __init__(
        self,
        name: str,
        methods: Iterable[MethodSpec],
        *,
        system_prompt: str | None = None,
    ) -> None:
        registry: dict[str, MethodSpec] = {}
        for method in methods:
            if method.name in registry:
                raise ValueError(f"Method already declared: {method.name}")
            registry[method.name] = method
        if not registry:
            raise ValueError(f"Contract {name} declares no methods")

        self.name = name
        self.system_prompt = system_prompt
        self._methods = MappingProxyType(registry)

    def __getitem__(self, method_name: str) -> MethodSpec:
        return self._methods[method_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._methods)

    def __len__(self) -> int:
        return len(self._methods)

    @property
    def uses_retrieval(self) -> bool:
        return any(method.retrieval_augmented for method in self._methods.values())

    @property
    def uses_memory(self) -> bool:
        return any(method.memory_aware for method in self._methods.values())
