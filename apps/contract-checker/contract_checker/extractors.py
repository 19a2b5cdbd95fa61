"""Shape extractors turning a service description into a CurrentShape."""

from __future__ import annotations

import importlib
import inspect
import re
import types
import typing
from pathlib import Path
from typing import Any, Iterable, Protocol, Union

import structlog
import yaml

from .exceptions import ExtractionError
from .models import CurrentShape, Signature

LOGGER = structlog.get_logger("contract_checker")

Target = Union[str, Path, type]


class ShapeExtractor(Protocol):
    """Pluggable capability that can enumerate the operations of a target."""

    def supports(self, target: Target) -> bool:
        ...

    def extract(self, target: Target) -> CurrentShape:
        ...


_IMPORT_TARGET = re.compile(r"^(?P<module>[A-Za-z_][\w.]*):(?P<attr>[A-Za-z_][\w.]*)$")
_NONE_TYPE = type(None)


def describe_annotation(annotation: Any) -> str:
    """Render a resolved annotation as a stable nominal type name."""

    if annotation is None or annotation is _NONE_TYPE:
        return "None"
    if annotation is Ellipsis:
        return "..."
    if isinstance(annotation, list):
        return "[" + ", ".join(describe_annotation(arg) for arg in annotation) + "]"

    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in args if arg is not _NONE_TYPE]
        inner = ", ".join(describe_annotation(arg) for arg in members)
        if len(members) < len(args):
            if len(members) == 1:
                return f"Optional[{inner}]"
            return f"Optional[Union[{inner}]]"
        return f"Union[{inner}]"
    if origin is not None:
        origin_name = _name_of(origin)
        if not args:
            return origin_name
        return f"{origin_name}[{', '.join(describe_annotation(arg) for arg in args)}]"
    if isinstance(annotation, typing.TypeVar):
        return annotation.__name__
    if isinstance(annotation, str):
        return annotation
    return _name_of(annotation)


def _name_of(obj: Any) -> str:
    if isinstance(obj, type):
        return obj.__qualname__
    for attr in ("_name", "__name__"):
        value = getattr(obj, attr, None)
        if isinstance(value, str) and value:
            return value
    return repr(obj)


def _is_optional(annotation: Any) -> bool:
    origin = typing.get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        return _NONE_TYPE in typing.get_args(annotation)
    return False


class ReflectiveExtractor:
    """Extracts public methods of a Python class given as ``module:Class``."""

    def supports(self, target: Target) -> bool:
        if isinstance(target, type):
            return True
        return isinstance(target, str) and bool(_IMPORT_TARGET.match(target))

    def extract(self, target: Target) -> CurrentShape:
        if isinstance(target, type):
            return self.extract_class(target)
        return self.extract_class(self._resolve(str(target)))

    def extract_class(self, cls: type) -> CurrentShape:
        label = f"{cls.__module__}:{cls.__qualname__}"
        signatures = []
        for name in sorted(dir(cls)):
            if name.startswith("_"):
                continue
            raw = inspect.getattr_static(cls, name)
            if isinstance(raw, staticmethod):
                func, bound = raw.__func__, False
            elif isinstance(raw, classmethod):
                func, bound = raw.__func__, True
            elif inspect.isfunction(raw):
                func, bound = raw, True
            else:
                continue
            signatures.append(self._signature(label, name, func, bound))

        version = getattr(cls, "API_VERSION", None)
        shape = CurrentShape(
            service=cls.__name__,
            version=str(version) if version is not None else None,
            signatures=tuple(signatures),
        )
        LOGGER.debug("shape_extracted", extractor="reflective", target=label, operations=len(shape))
        return shape

    @staticmethod
    def _resolve(target: str) -> type:
        match = _IMPORT_TARGET.match(target)
        if not match:
            raise ExtractionError("Expected a 'package.module:ClassName' target", target=target)
        try:
            obj: Any = importlib.import_module(match.group("module"))
        except ImportError as exc:
            raise ExtractionError(f"Cannot import module: {exc}", target=target) from exc
        for part in match.group("attr").split("."):
            try:
                obj = getattr(obj, part)
            except AttributeError as exc:
                raise ExtractionError(f"Attribute '{part}' not found", target=target) from exc
        if not isinstance(obj, type):
            raise ExtractionError("Target does not resolve to a class", target=target)
        return obj

    @staticmethod
    def _signature(label: str, name: str, func: Any, bound: bool) -> Signature:
        try:
            hints = typing.get_type_hints(func)
        except (NameError, TypeError) as exc:
            raise ExtractionError(f"Cannot resolve annotations: {exc}", target=label, operation=name) from exc

        params = list(inspect.signature(func).parameters.values())
        if bound:
            params = params[1:]

        parameter_types = []
        for param in params:
            if param.name not in hints:
                raise ExtractionError(
                    f"Parameter '{param.name}' has no type annotation", target=label, operation=name
                )
            rendered = describe_annotation(hints[param.name])
            if param.kind is inspect.Parameter.VAR_POSITIONAL:
                rendered = f"*{rendered}"
            elif param.kind is inspect.Parameter.VAR_KEYWORD:
                rendered = f"**{rendered}"
            parameter_types.append(rendered)

        if "return" not in hints:
            raise ExtractionError("Operation has no declared return type", target=label, operation=name)
        returns = hints["return"]
        return Signature.build(
            name,
            parameter_types,
            describe_annotation(returns),
            optional_return=_is_optional(returns),
        )


class DescriptionExtractor:
    """Reads a declared service description from YAML or JSON."""

    suffixes = {".yaml", ".yml", ".json"}

    def supports(self, target: Target) -> bool:
        if isinstance(target, type):
            return False
        path = Path(target)
        return path.suffix.lower() in self.suffixes and path.is_file()

    def extract(self, target: Target) -> CurrentShape:
        path = Path(str(target))
        label = str(path)
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ExtractionError(f"Cannot read service description: {exc}", target=label) from exc
        except yaml.YAMLError as exc:
            raise ExtractionError(f"Service description is not valid YAML/JSON: {exc}", target=label) from exc
        if not isinstance(payload, dict):
            raise ExtractionError("Service description must be a mapping", target=label)

        operations = payload.get("operations")
        if not isinstance(operations, list):
            raise ExtractionError("Service description needs an 'operations' list", target=label)

        signatures = [self._signature(label, index, entry) for index, entry in enumerate(operations)]
        version = payload.get("version")
        shape = CurrentShape(
            service=str(payload.get("service") or path.stem),
            version=str(version) if version is not None else None,
            signatures=tuple(signatures),
        )
        LOGGER.debug("shape_extracted", extractor="description", target=label, operations=len(shape))
        return shape

    @staticmethod
    def _signature(label: str, index: int, entry: Any) -> Signature:
        if not isinstance(entry, dict):
            raise ExtractionError(f"Operation #{index} must be a mapping", target=label)
        name = entry.get("name") or entry.get("operation")
        if not isinstance(name, str) or not name.strip():
            raise ExtractionError(f"Operation #{index} has no name", target=label)

        returns = entry.get("returns")
        if not isinstance(returns, str) or not returns.strip():
            raise ExtractionError("Operation has no declared return type", target=label, operation=name)

        raw_params = entry.get("parameters") or []
        if not isinstance(raw_params, list):
            raise ExtractionError("Operation parameters must be a list", target=label, operation=name)
        parameter_types = []
        for param in raw_params:
            if isinstance(param, dict):
                param = param.get("type")
            if not isinstance(param, str) or not param.strip():
                raise ExtractionError("Parameter without a type", target=label, operation=name)
            parameter_types.append(param)

        optional = entry.get("optionalReturn", entry.get("optional_return", False))
        if not isinstance(optional, bool):
            raise ExtractionError("'optionalReturn' must be a boolean", target=label, operation=name)
        return Signature.build(name, parameter_types, returns, optional_return=optional)


_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT = re.compile(r"//[^\n]*")
_STRING_LITERAL = re.compile(r'"(?:\\.|[^"\\\n])*"')
_CHAR_LITERAL = re.compile(r"'(?:\\.|[^'\\\n])'")
_API_VERSION = re.compile(r"API Version:\s*(?P<version>[\w.\-]+)")
_TYPE_DECLARATION = re.compile(r"\b(?P<kind>class|interface|enum|record)\s+(?P<name>\w+)")
_ANNOTATION = re.compile(r"@[\w.]+(?:\([^)]*\))?\s*")
_METHOD = re.compile(
    r"(?P<annotations>(?:@[\w.]+(?:\([^)]*\))?\s+)*)"
    r"(?P<modifiers>(?:(?:public|protected|private|static|final|abstract|synchronized|default|native)\s+)*)"
    r"(?:<(?:[^<>]|<[^<>]*>)+>\s+)?"
    r"(?P<returns>[\w.$]+(?:\s*<[^(){};=]*>)?(?:\s*\[\s*\])*)\s+"
    r"(?P<name>\w+)\s*\((?P<params>[^()]*)\)\s*(?:throws\s+[\w.,\s]+?)?\s*(?=[{;])"
)
_PUBLIC_DECLARATION = re.compile(r"\bpublic\b[^;{}=]*\(")
_PARAMETER = re.compile(r"^(?P<type>.*\S)\s+(?P<name>\w+)$")
_JAVA_KEYWORDS = {
    "new", "return", "throw", "else", "case", "public", "protected", "private",
    "static", "final", "abstract", "synchronized", "default", "native",
    "class", "interface", "enum", "record",
}


def normalize_java_type(raw: str) -> str:
    """Collapse whitespace in a Java type so equal types render identically."""

    collapsed = re.sub(r"\s*([<>,\[\]])\s*", r"\1", " ".join(raw.split()))
    return collapsed.replace(",", ", ")


def _split_top_level(raw: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for char in raw:
        if char == "<":
            depth += 1
        elif char == ">":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    if "".join(current).strip():
        parts.append("".join(current))
    return parts


class JavaSourceExtractor:
    """Parses public method declarations from a ``.java`` source file."""

    def supports(self, target: Target) -> bool:
        if isinstance(target, type):
            return False
        path = Path(target)
        return path.suffix.lower() == ".java" and path.is_file()

    def extract(self, target: Target) -> CurrentShape:
        path = Path(str(target))
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ExtractionError(f"Cannot read Java source: {exc}", target=str(path)) from exc
        shape = self.extract_source(raw, label=str(path))
        LOGGER.debug("shape_extracted", extractor="java", target=str(path), operations=len(shape))
        return shape

    def extract_source(self, raw: str, *, label: str = "<source>") -> CurrentShape:
        version_match = _API_VERSION.search(raw)
        source = _BLOCK_COMMENT.sub(" ", raw)
        source = _LINE_COMMENT.sub("", source)
        source = _STRING_LITERAL.sub('""', source)
        source = _CHAR_LITERAL.sub("''", source)

        declaration = _TYPE_DECLARATION.search(source)
        if not declaration:
            raise ExtractionError("No class or interface declaration found", target=label)
        type_name = declaration.group("name")
        is_interface = declaration.group("kind") == "interface"
        body = self._top_level_body(source, declaration.end(), label)

        signatures = []
        matches = list(_METHOD.finditer(body))
        for candidate in _PUBLIC_DECLARATION.finditer(body):
            if not any(match.start() <= candidate.start() < match.end() for match in matches):
                raise ExtractionError(
                    f"Cannot parse public declaration '{' '.join(candidate.group().split())}'", target=label
                )
        for match in matches:
            name = match.group("name")
            returns = match.group("returns")
            modifiers = match.group("modifiers").split()
            if returns in _JAVA_KEYWORDS or name == type_name:
                continue
            if is_interface:
                if "private" in modifiers:
                    continue
            elif "public" not in modifiers:
                continue
            annotations = {ann.strip().lstrip("@").split("(")[0].split(".")[-1]
                           for ann in _ANNOTATION.findall(match.group("annotations"))}
            return_type = normalize_java_type(returns)
            signatures.append(
                Signature.build(
                    name,
                    self._parameter_types(match.group("params"), label, name),
                    return_type,
                    optional_return=return_type.split("<")[0].endswith("Optional") or "Nullable" in annotations,
                )
            )

        return CurrentShape(
            service=type_name,
            version=version_match.group("version") if version_match else None,
            signatures=tuple(signatures),
        )

    @staticmethod
    def _top_level_body(source: str, offset: int, label: str) -> str:
        """Return the type body with nested blocks collapsed to ``{}``."""

        start = source.find("{", offset)
        if start < 0:
            raise ExtractionError("Type declaration has no body", target=label)
        depth = 0
        out: list[str] = []
        for char in source[start:]:
            if char == "{":
                depth += 1
                if depth == 2:
                    out.append("{")
                continue
            if char == "}":
                if depth == 2:
                    out.append("}")
                depth -= 1
                if depth == 0:
                    return "".join(out)
                continue
            if depth == 1:
                out.append(char)
        raise ExtractionError("Unbalanced braces in Java source", target=label)

    @staticmethod
    def _parameter_types(raw: str, label: str, operation: str) -> list[str]:
        parameter_types = []
        for part in _split_top_level(raw):
            cleaned = _ANNOTATION.sub("", part).strip()
            cleaned = re.sub(r"^final\s+", "", cleaned)
            match = _PARAMETER.match(cleaned)
            if not match or not match.group("type").strip():
                raise ExtractionError(
                    f"Cannot parse parameter '{part.strip()}'", target=label, operation=operation
                )
            parameter_types.append(normalize_java_type(match.group("type")))
        return parameter_types


DEFAULT_EXTRACTORS: tuple[ShapeExtractor, ...] = (
    ReflectiveExtractor(),
    JavaSourceExtractor(),
    DescriptionExtractor(),
)


def extract_shape(target: Target, extractors: Iterable[ShapeExtractor] | None = None) -> CurrentShape:
    """Extract the current shape of ``target`` with the first extractor that supports it."""

    for extractor in extractors or DEFAULT_EXTRACTORS:
        if extractor.supports(target):
            return extractor.extract(target)
    raise ExtractionError(
        "Unsupported service description; expected module:Class, .java, .yaml, .yml or .json",
        target=str(target),
    )
