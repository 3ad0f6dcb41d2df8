"""Typed model of an ffmpeg filter graph.

Graph construction works on these objects; the ``-filter_complex`` text is
produced only by :meth:`FilterGraph.serialize` at the encoder boundary.
"""

import math
from dataclasses import dataclass, field
from typing import Optional, Union

Value = Union[str, int, float]


def format_number(value: float) -> str:
    """Render a number the way ffmpeg option strings expect it: ``5`` not ``5.0``."""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if math.isfinite(value) and value == int(value):
        return str(int(value))
    return repr(value)


def format_value(value: Value) -> str:
    if isinstance(value, str):
        return value
    return format_number(value)


def pad(label: str) -> str:
    """Wrap a stream label as a filter pad: ``0:v`` -> ``[0:v]``."""
    return f"[{label}]"


@dataclass(frozen=True)
class Filter:
    """One filter: ``name=arg:arg:key=value``."""

    name: str
    args: tuple[Value, ...] = ()
    params: tuple[tuple[str, Value], ...] = ()

    @classmethod
    def of(cls, name: str, *args: Value, **params: Value) -> "Filter":
        return cls(name, tuple(args), tuple(params.items()))

    def serialize(self) -> str:
        parts = [format_value(arg) for arg in self.args]
        parts.extend(f"{key}={format_value(value)}" for key, value in self.params)
        if not parts:
            return self.name
        return f"{self.name}={':'.join(parts)}"


@dataclass(frozen=True)
class FilterChain:
    """Linear chain of filters between labelled input and output pads."""

    inputs: tuple[str, ...]
    filters: tuple[Filter, ...]
    outputs: tuple[str, ...]

    def serialize(self) -> str:
        return (
            "".join(pad(label) for label in self.inputs)
            + ",".join(f.serialize() for f in self.filters)
            + "".join(pad(label) for label in self.outputs)
        )


@dataclass(frozen=True)
class InputSpec:
    """One ``-i`` input with its input options."""

    path: str
    options: tuple[str, ...] = ()


@dataclass
class FilterGraph:
    """Ordered inputs and filter chains plus the labels to map on output."""

    inputs: list[InputSpec] = field(default_factory=list)
    chains: list[FilterChain] = field(default_factory=list)
    video_label: Optional[str] = None
    audio_label: Optional[str] = None

    def add_input(self, path: str, options: tuple[str, ...] = ()) -> int:
        """Register an input file and return its ffmpeg input index."""
        self.inputs.append(InputSpec(path, options))
        return len(self.inputs) - 1

    def push(self, inputs: Union[str, list[str], tuple[str, ...]], filters: list[Filter], output: Union[str, list[str]]) -> str:
        """Append a chain; returns the (first) output label for chaining."""
        inputs = (inputs,) if isinstance(inputs, str) else tuple(inputs)
        outputs = (output,) if isinstance(output, str) else tuple(output)
        self.chains.append(FilterChain(inputs, tuple(filters), outputs))
        return outputs[0]

    def serialize_chains(self) -> list[str]:
        return [chain.serialize() for chain in self.chains]

    def serialize(self) -> str:
        return ";".join(self.serialize_chains())

    def map_label(self, label: str) -> str:
        """Argument for ``-map``: input streams stay bare, filter outputs get brackets."""
        if label[0].isdigit():
            return label
        return pad(label)
