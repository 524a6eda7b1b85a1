import sys
from pathlib import Path

from capture.browser import open_session
from capture.bundle import build_bundle
from capture.errors import SetupError
from capture.server import serve_assets
from verify.config import load_config
from verify.fixtures import list_fixtures
from verify.golden import GoldenStore
from verify.runner import FIXTURE_DIR, run_suite

ARTIFACT_ID = "roundtrip.py"


def usage():
    print("Error: bundle entry argument is required")
    print("Usage: python roundtrip.py <entry> [root]")
    print("  Example: python roundtrip.py ../rrweb-snapshot/src/index.ts tests")
    print("  <entry> is a prebuilt .js bundle or a module to compile with the bundler")
    print("  [root] holds html/ and iframe-html/ (default: tests)")
    print("  Set SNAPSHOT_UPDATE=1 to rewrite goldens.")


def main(argv=None, environ=None):
    argv = sys.argv if argv is None else argv
    if len(argv) < 2:
        usage()
        return 1

    entry = argv[1]
    root = Path(argv[2] if len(argv) >= 3 else "tests")
    config = load_config(environ)

    try:
        bundle = build_bundle(entry, command=config.bundler)
        fixtures = list_fixtures(root / FIXTURE_DIR)
        store = GoldenStore(root / "__snapshots__", mode=config.golden_mode)
        print(f"Running {len(fixtures)} fixtures from {root / FIXTURE_DIR} (golden mode: {config.golden_mode})")

        with serve_assets(root, config.port) as server, \
                open_session(headless=config.headless, timeout=config.timeout) as session:
            results = run_suite(session, server, bundle, store, fixtures, ARTIFACT_ID)
    except (SetupError, OSError) as e:
        print(f"Setup failed: {e}")
        return 1

    failed = [r for r in results if not r.passed]
    for r in results:
        print(f"{'PASS' if r.passed else 'FAIL'} {r.title}")
        if not r.passed:
            print(r.detail)

    print(f"{len(results) - len(failed)} passed, {len(failed)} failed")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
