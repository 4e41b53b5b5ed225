from __future__ import annotations

import pytest

from sources import MAX_REFERENCES, parse_reference, resolve_references
from utils.exceptions import (
    ClientInputError,
    CrossRepositoryReference,
    DuplicateReference,
    InvalidReference,
    ReferenceCountError,
)


def test_parse_reference_accepts_url_without_scheme() -> None:
    ref = parse_reference("github.com/acme/widgets/pull/42")
    assert ref.owner == "acme"
    assert ref.repo == "widgets"
    assert ref.number == 42
    assert ref.url == "https://github.com/acme/widgets/pull/42"


def test_parse_reference_ignores_trailing_path() -> None:
    ref = parse_reference("https://github.com/acme/widgets/pull/7/files#diff-1")
    assert ref.number == 7
    assert ref.url == "https://github.com/acme/widgets/pull/7"


@pytest.mark.parametrize(
    "url",
    [
        "https://github.com/acme/widgets/issues/3",
        "https://gitlab.com/acme/widgets/pull/3",
        "https://github.com/acme/widgets/pull/abc",
        "",
    ],
)
def test_parse_reference_rejects_non_pr_urls(url: str) -> None:
    with pytest.raises(InvalidReference):
        parse_reference(url)


def test_resolve_references_keeps_input_order() -> None:
    refs = resolve_references(
        [
            "https://github.com/acme/widgets/pull/9",
            "https://github.com/acme/widgets/pull/2",
            "https://github.com/acme/widgets/pull/5",
        ]
    )
    assert [ref.number for ref in refs] == [9, 2, 5]
    assert [ref.display_order for ref in refs] == [0, 1, 2]


def test_resolve_references_rejects_other_repository() -> None:
    with pytest.raises(CrossRepositoryReference):
        resolve_references(
            [
                "https://github.com/acme/widgets/pull/1",
                "https://github.com/acme/gadgets/pull/2",
            ]
        )


def test_resolve_references_compares_repository_case_insensitively() -> None:
    refs = resolve_references(
        [
            "https://github.com/Acme/Widgets/pull/1",
            "https://github.com/acme/widgets/pull/2",
        ]
    )
    assert len(refs) == 2


def test_resolve_references_rejects_duplicate_numbers() -> None:
    with pytest.raises(DuplicateReference) as exc_info:
        resolve_references(
            [
                "https://github.com/acme/widgets/pull/4",
                "github.com/acme/widgets/pull/4",
            ]
        )
    assert exc_info.value.number == 4


def test_resolve_references_enforces_count_bounds() -> None:
    with pytest.raises(ReferenceCountError):
        resolve_references([])
    urls = [f"https://github.com/acme/widgets/pull/{n}" for n in range(1, MAX_REFERENCES + 2)]
    with pytest.raises(ReferenceCountError):
        resolve_references(urls)
    assert len(resolve_references(urls[:MAX_REFERENCES])) == MAX_REFERENCES


def test_reference_errors_are_client_errors() -> None:
    with pytest.raises(ClientInputError):
        resolve_references(["not a url"])
