import shlex
import subprocess
from pathlib import Path

from capture.errors import SetupError

GLOBAL_NAME = "rrweb"
DEFAULT_BUNDLER = "npx --yes esbuild {entry} --bundle --format=iife --global-name={name}"


def bundler_command(entry, global_name=GLOBAL_NAME, command=None):
    template = command or DEFAULT_BUNDLER
    return [
        part.format(entry=str(entry), name=global_name)
        for part in shlex.split(template)
    ]


def build_bundle(entry, global_name=GLOBAL_NAME, command=None):
    """Return one global-scope script exposing the library as ``global_name``.

    A ``.js`` entry is taken to be a prebuilt bundle and read as-is unless a
    bundler command is given. Anything else goes through the bundler once;
    callers keep the text for the whole suite.
    """
    entry = Path(entry)
    if not entry.exists():
        raise SetupError(f"bundle entry not found: {entry}")

    if entry.suffix == ".js" and command is None:
        code = entry.read_text(encoding="utf-8")
    else:
        cmd = bundler_command(entry, global_name, command)
        print(f"Bundling {entry} as '{global_name}'...")
        try:
            result = subprocess.run(cmd, check=True, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise SetupError(f"bundler not available: {cmd[0]}") from e
        except subprocess.CalledProcessError as e:
            raise SetupError(f"bundle compilation failed for {entry}:\n{e.stderr}") from e
        code = result.stdout

    if not code.strip():
        raise SetupError(f"bundle for {entry} is empty")
    return code
