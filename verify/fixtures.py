from collections import namedtuple
from pathlib import Path

IGNORE_SUFFIX = "~"
TITLE_PREFIX = "[html file]: "

# Documents whose rendering mode is fixed at parse time; set_content would
# not reproduce it, so they are loaded from their own URL.
DIRECT_LOAD = frozenset({"iframe.html"})

Fixture = namedtuple("Fixture", ["name", "content", "direct"])


def list_fixtures(directory, direct=DIRECT_LOAD):
    directory = Path(directory)
    fixtures = []
    for path in sorted(p for p in directory.rglob("*") if p.is_file()):
        name = path.relative_to(directory).as_posix()
        if name.endswith(IGNORE_SUFFIX):
            continue
        fixtures.append(Fixture(
            name=name,
            content=path.read_text(encoding="utf-8"),
            direct=name in direct,
        ))
    return fixtures


def fixture_title(fixture):
    return TITLE_PREFIX + fixture.name
