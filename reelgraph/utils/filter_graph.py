from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType

# Characters special to the filter option parser and to the graph parser
_OPTION_SPECIALS = re.compile(r"([\\':])")
_GRAPH_SPECIALS = re.compile(r"([\\'\[\],;])")
_PLAIN_VALUE = re.compile(r"^-?[0-9.]+$")
# Arithmetic expressions that are safe inside single quotes at graph level
_EXPRESSION = re.compile(r"^[\w\s.+\-*/()<>=!,|&]+$")

LABEL_PREFIXES = MappingProxyType(
    {
        "video": "vid",
        "image": "img",
        "audio": "aud",
        "text": "txt",
        "filter": "flt",
        "composite": "comp",
        "shadow": "shd",
        "canvas": "canvas",
        "mix": "amix",
    }
)


def format_number(value: float) -> str:
    """Deterministic, compact decimal rendering (2.0 -> "2", 0.25 -> "0.25")."""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return f"{number:.6f}".rstrip("0").rstrip(".")


def escape_value(value: str) -> str:
    """Escape a literal option value for both the option and graph parsers."""
    option_level = _OPTION_SPECIALS.sub(r"\\\1", value)
    return _GRAPH_SPECIALS.sub(r"\\\1", option_level)


def escape_text(text: str) -> str:
    """Escape text for a text-draw node; '%' would otherwise start an expansion."""
    expanded_level = text.replace("\\", "\\\\").replace("%", "\\%")
    return escape_value(expanded_level)


def quote_expr(expr: str) -> str:
    """Protect an expression containing commas from the graph parser."""
    if _PLAIN_VALUE.match(expr):
        return expr
    return f"'{expr}'"


def between_expr(start: float, end: float | None, fmt) -> str:
    upper = "inf" if end is None else fmt(end)
    return f"between(t,{fmt(start)},{upper})"


@dataclass(frozen=True)
class FilterNode:
    name: str
    params: tuple[tuple[str, str], ...] = ()
    inputs: tuple[str, ...] = ()
    output: str | None = None

    def render(self) -> str:
        inputs = "".join(f"[{label}]" for label in self.inputs)
        body = self.name
        if self.params:
            body += "=" + ":".join(f"{key}={value}" for key, value in self.params)
        output = f"[{self.output}]" if self.output else ""
        return f"{inputs}{body}{output}"

    def param(self, key: str) -> str | None:
        for name, value in self.params:
            if name == key:
                return value
        return None


@dataclass
class InputFile:
    index: int
    source: str
    file_path: str
    options: tuple[str, ...] = ()

    def to_args(self) -> list[str]:
        return [*self.options, "-i", self.file_path]


@dataclass
class FilterGraph:
    width: int
    height: int
    frame_rate: float
    duration: float | None = None
    inputs: list[InputFile] = field(default_factory=list)
    nodes: list[FilterNode] = field(default_factory=list)
    layer_labels: list[str] = field(default_factory=list)
    video_output: str | None = None
    audio_output: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    @property
    def output_labels(self) -> list[str]:
        return [node.output for node in self.nodes if node.output]

    def nodes_named(self, name: str) -> list[FilterNode]:
        return [node for node in self.nodes if node.name == name]

    def render(self) -> str:
        return ";".join(node.render() for node in self.nodes)


class LabelAllocator:
    """Hands out graph labels from monotonic per-kind counters."""

    def __init__(self):
        self._counters: dict[str, int] = {}

    def next(self, kind: str) -> str:
        count = self._counters.get(kind, 0)
        self._counters[kind] = count + 1
        return f"{LABEL_PREFIXES.get(kind, kind)}{count}"


class ChainBuilder:
    """
    Collects the ordered filters of one layer's local chain.

    Each filter becomes its own node; intermediate outputs are named after
    the chain's final label so they never collide with another chain.
    """

    def __init__(self, source: str, label: str):
        self.source = source
        self.label = label
        self._steps: list[tuple[str, tuple[tuple[str, str], ...]]] = []

    def add(self, name: str, *params: tuple[str, str]) -> ChainBuilder:
        self._steps.append((name, tuple(params)))
        return self

    def __len__(self) -> int:
        return len(self._steps)

    def build(self) -> list[FilterNode]:
        if not self._steps:
            return [FilterNode("null", inputs=(self.source,), output=self.label)]

        nodes: list[FilterNode] = []
        current = self.source
        last = len(self._steps) - 1
        for position, (name, params) in enumerate(self._steps):
            output = self.label if position == last else f"{self.label}s{position}"
            inputs = (current,) if current else ()
            nodes.append(FilterNode(name, params, inputs, output))
            current = output
        return nodes


def format_param_value(value: float | int | bool | str) -> str:
    """Render a parameter value; expressions are quoted, literals escaped."""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return format_number(value)
    text = str(value)
    if _PLAIN_VALUE.match(text):
        return text
    if _EXPRESSION.match(text) and any(char in text for char in "(,"):
        return quote_expr(text)
    return escape_value(text)
