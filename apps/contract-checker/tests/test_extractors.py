from __future__ import annotations

import json
import typing
from pathlib import Path
from typing import Optional, Union

import pytest
import yaml

from contract_checker.exceptions import ExtractionError
from contract_checker.extractors import (
    DescriptionExtractor,
    JavaSourceExtractor,
    ReflectiveExtractor,
    describe_annotation,
    extract_shape,
)

USER_SERVICE_JAVA = """\
package com.example.library;

import java.util.ArrayList;
import java.util.HashMap;
import java.util.List;
import java.util.Map;

/**
 * Service for managing users.
 * API Version: 1.0.0
 */
public class UserService {

    private final Map<Long, User> users = new HashMap<>();

    public UserService() {
        // Seed with sample data
        users.put(1L, new User(1L, "john.doe@example.com", "John Doe"));
    }

    /**
     * Find a user by their numeric ID.
     *
     * @param userId the user's numeric ID
     * @return the User object, or null if not found
     */
    public User findById(Long userId) {
        return users.get(userId);
    }

    public List<User> findAll() {
        return new ArrayList<>(users.values());
    }

    public User createUser(String email, String name) {
        Long id = (long) (users.size() + 1);
        User user = new User(id, email, name);
        users.put(id, user);
        return user;
    }

    private void audit(String message) {
        System.out.println("{" + message);
    }
}
"""

USER_LOOKUP_JAVA = """\
public interface UserLookup {
    int MAX_RESULTS = 10;

    @Nullable
    User findById(Long userId);

    Optional<User> findByEmail(final String email);

    Map<String, List<User>> groupBy(Map<String, List<User>> index, @NonNull String key) throws IOException;

    default int count() {
        return 0;
    }
}
"""


class Catalog:
    def _hidden(self) -> int:
        return 0

    @staticmethod
    def parse(raw: str) -> int:
        return int(raw)

    @classmethod
    def create(cls, size: int = 0) -> Catalog:
        return cls()

    def lookup(self, *keys: str, **options: bool) -> dict[str, int] | None:
        return None

    @property
    def size(self) -> int:
        return 0


class MissingReturn:
    def fetch(self, key: str):
        return key


class MissingParameter:
    def fetch(self, key) -> str:
        return key


def _rendered(shape) -> list[str]:
    return [str(signature) for signature in shape.signatures]


def test_reflective_extraction_of_sample_service() -> None:
    shape = extract_shape("sample_library.service:UserService")

    assert shape.service == "UserService"
    assert shape.version == "1.0.0"
    assert _rendered(shape) == [
        "create_user(str, str) -> User",
        "find_all() -> list[User]",
        "find_by_id(int) -> User",
    ]


def test_reflective_extraction_marks_optional_returns() -> None:
    shape = extract_shape("sample_library.service_v2:UserService")

    find_by_id = shape.operations()["find_by_id"][0]
    assert shape.version == "2.0.0"
    assert find_by_id.optional_return is True
    assert str(find_by_id) == "find_by_id(str) -> Optional[User]"


def test_reflective_extraction_handles_method_kinds() -> None:
    shape = ReflectiveExtractor().extract(Catalog)

    assert _rendered(shape) == [
        "create(int) -> Catalog",
        "lookup(*str, **bool) -> Optional[dict[str, int]]",
        "parse(str) -> int",
    ]
    assert shape.operations()["lookup"][0].optional_return is True


def test_missing_return_annotation_is_an_extraction_error() -> None:
    with pytest.raises(ExtractionError, match="no declared return type") as excinfo:
        extract_shape(MissingReturn)

    assert excinfo.value.operation == "fetch"


def test_missing_parameter_annotation_is_an_extraction_error() -> None:
    with pytest.raises(ExtractionError, match="Parameter 'key'"):
        extract_shape(MissingParameter)


@pytest.mark.parametrize(
    "target",
    ["sample_library.missing:UserService", "sample_library.service:Missing", "sample_library.service:seed_users"],
)
def test_unresolvable_reflective_targets(target: str) -> None:
    with pytest.raises(ExtractionError):
        extract_shape(target)


@pytest.mark.parametrize(
    "annotation, expected",
    [
        (int, "int"),
        (None, "None"),
        (Optional[int], "Optional[int]"),
        (typing.List[int], "list[int]"),
        (list[dict[str, int]], "list[dict[str, int]]"),
        (Union[int, str], "Union[int, str]"),
        (typing.Callable[[int], str], "Callable[[int], str]"),
    ],
)
def test_describe_annotation(annotation: object, expected: str) -> None:
    assert describe_annotation(annotation) == expected


def test_declared_description(tmp_path: Path) -> None:
    description = {
        "service": "UserService",
        "version": "2.0.0",
        "operations": [
            {"name": "findById", "parameters": [{"name": "userId", "type": "String"}], "returns": "Optional<User>",
             "optionalReturn": True},
            {"name": "findAll", "returns": "List<User>"},
        ],
    }
    path = tmp_path / "user-service.yaml"
    path.write_text(yaml.safe_dump(description), encoding="utf-8")

    shape = extract_shape(str(path))

    assert shape.service == "UserService"
    assert shape.version == "2.0.0"
    assert _rendered(shape) == ["findAll() -> List<User>", "findById(String) -> Optional<User>"]


def test_declared_operation_without_return_type(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text('{"operations": [{"name": "findAll", "parameters": []}]}', encoding="utf-8")

    with pytest.raises(ExtractionError, match="no declared return type") as excinfo:
        DescriptionExtractor().extract(path)

    assert excinfo.value.operation == "findAll"


def test_java_class_declarations(tmp_path: Path) -> None:
    path = tmp_path / "UserService.java"
    path.write_text(USER_SERVICE_JAVA, encoding="utf-8")

    shape = extract_shape(str(path))

    assert shape.service == "UserService"
    assert shape.version == "1.0.0"
    assert _rendered(shape) == [
        "createUser(String, String) -> User",
        "findAll() -> List<User>",
        "findById(Long) -> User",
    ]


def test_java_interface_declarations() -> None:
    shape = JavaSourceExtractor().extract_source(USER_LOOKUP_JAVA)

    assert shape.service == "UserLookup"
    assert _rendered(shape) == [
        "count() -> int",
        "findByEmail(String) -> Optional<User>",
        "findById(Long) -> User?",
        "groupBy(Map<String, List<User>>, String) -> Map<String, List<User>>",
    ]


def test_java_source_without_type_declaration() -> None:
    with pytest.raises(ExtractionError, match="No class or interface"):
        JavaSourceExtractor().extract_source("package com.example;\n")


def test_java_source_with_unbalanced_braces() -> None:
    with pytest.raises(ExtractionError, match="Unbalanced"):
        JavaSourceExtractor().extract_source("public class Broken {\n public int size() {\n")


def test_unsupported_target(tmp_path: Path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("hello", encoding="utf-8")

    with pytest.raises(ExtractionError, match="Unsupported"):
        extract_shape(str(path))


@pytest.mark.parametrize("flag", ["false", 0, None])
def test_declared_optional_return_must_be_boolean(tmp_path: Path, flag: object) -> None:
    path = tmp_path / "user-service.json"
    path.write_text(
        json.dumps({"operations": [{"name": "findById", "returns": "User", "optionalReturn": flag}]}),
        encoding="utf-8",
    )

    with pytest.raises(ExtractionError, match="must be a boolean") as excinfo:
        extract_shape(str(path))

    assert excinfo.value.operation == "findById"


def test_java_generic_methods_are_extracted() -> None:
    source = """\
public class Collections2 {
    public <T extends Comparable<T>> T max(List<T> xs) {
        return xs.get(0);
    }

    public <K, V> Map<K, V> index(List<V> values) {
        return null;
    }

    public List<String> names(String... xs) {
        return null;
    }

    public static void main(String[] args) {
    }
}
"""

    shape = JavaSourceExtractor().extract_source(source)

    assert _rendered(shape) == [
        "index(List<V>) -> Map<K, V>",
        "main(String[]) -> void",
        "max(List<T>) -> T",
        "names(String...) -> List<String>",
    ]


def test_unparseable_public_declaration_is_an_extraction_error() -> None:
    source = """\
public class Deep {
    public <T extends Map<String, List<Set<T>>>> T pick(T value) {
        return value;
    }
}
"""

    with pytest.raises(ExtractionError, match="Cannot parse public declaration"):
        JavaSourceExtractor().extract_source(source)
