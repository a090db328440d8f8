import os
from concurrent.futures import ThreadPoolExecutor

import pytest

from easyblob.utils.naming_utils import StoredNameGenerator, extract_extension


@pytest.mark.parametrize(
    "original_filename, expected",
    [
        ("a.txt", "txt"),
        ("archive.tar.gz", "gz"),
        ("photo.JPG", "JPG"),
        ("README", ""),
        ("trailing.", ""),
        (".bashrc", "bashrc"),
        ("", ""),
        ("../../etc/passwd", ""),
        ("..\\..\\windows\\system.ini", "ini"),
        ("dir.d/noext", ""),
        ("evil.t/x/../y", ""),
        ("weird.t$x!t", "txt"),
        ("long." + "a" * 40, "a" * 16),
    ],
)
def test_extract_extension(original_filename, expected):
    assert extract_extension(original_filename) == expected


def test_derive_stored_name_keeps_extension():
    generator = StoredNameGenerator()
    stored_name = generator.derive_stored_name("a.txt")
    assert stored_name.endswith(".txt")
    assert stored_name != "a.txt"


@pytest.mark.parametrize(
    "original_filename",
    [
        "../../etc/passwd",
        "/etc/passwd",
        "..",
        "a/b/c.txt",
        "C:\\Windows\\evil.exe",
        "evil.t/../../x",
    ],
)
def test_derive_stored_name_is_single_safe_component(original_filename):
    stored_name = StoredNameGenerator().derive_stored_name(original_filename)
    assert os.path.basename(stored_name) == stored_name
    assert "/" not in stored_name
    assert "\\" not in stored_name
    assert ".." not in stored_name
    assert not stored_name.startswith(".")


def test_tokens_strictly_increase_within_one_clock_tick():
    generator = StoredNameGenerator(clock=lambda: 1_000)
    tokens = [generator.next_token() for _ in range(5)]
    assert tokens == [1_000, 1_001, 1_002, 1_003, 1_004]


def test_tokens_never_go_backwards():
    ticks = iter([5_000, 4_000, 4_500, 6_000])
    generator = StoredNameGenerator(clock=lambda: next(ticks))
    tokens = [generator.next_token() for _ in range(4)]
    assert tokens == [5_000, 5_001, 5_002, 6_000]


def test_same_name_same_tick_gives_distinct_names():
    generator = StoredNameGenerator(clock=lambda: 1_000)
    names = {generator.derive_stored_name("a.txt") for _ in range(100)}
    assert len(names) == 100


def test_generators_sharing_a_clock_do_not_collide():
    # two processes writing to one directory each have their own generator
    first = StoredNameGenerator(clock=lambda: 1_000)
    second = StoredNameGenerator(clock=lambda: 1_000)
    assert first.derive_stored_name("a.txt") != second.derive_stored_name("a.txt")


def test_derive_stored_name_is_unique_across_threads():
    generator = StoredNameGenerator()
    with ThreadPoolExecutor(max_workers=8) as executor:
        names = list(
            executor.map(lambda _: generator.derive_stored_name("a.txt"), range(2_000))
        )
    assert len(set(names)) == len(names)
