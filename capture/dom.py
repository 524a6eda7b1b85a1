import json

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from capture.bundle import GLOBAL_NAME
from capture.errors import EvaluationError, NavigationTimeout, ScenarioError, SerializationError

XHTML_NS = "http://www.w3.org/1999/xhtml"

# Scripts are evaluated as plain source text; every driver hands back a JSON
# string so DOM nodes never cross the page boundary.
ROUNDTRIP_DRIVER = """
(() => {
  const html = document.querySelector('html');
  const namespaced = !!html && html.getAttribute('xmlns') === '%(ns)s';
  const [snap] = %(name)s.snapshot(document);
  const rebuilt = %(name)s.rebuild(snap, { doc: document })[0];
  return JSON.stringify({
    markup: new XMLSerializer().serializeToString(rebuilt),
    namespaced: namespaced,
  });
})()
"""

STRUCTURED_DRIVER = """
JSON.stringify(%(name)s.snapshot(document)[0])
"""

# rebuild into a fresh iframe so the copy gets its own rendering context
IFRAME_REBUILD_DRIVER = """
(() => {
  const [snap] = %(name)s.snapshot(document);
  const iframe = document.createElement('iframe');
  iframe.setAttribute('width', document.body.clientWidth);
  iframe.setAttribute('height', document.body.clientHeight);
  iframe.style.transform = 'scale(0.3)';
  document.body.appendChild(iframe);
  %(name)s.rebuild(snap, { doc: iframe.contentDocument });
  const target = iframe.contentDocument.querySelector(%(selector)s);
  return JSON.stringify({
    compatMode: iframe.contentDocument.compatMode,
    height: target ? target.clientHeight : null,
  });
})()
"""


def roundtrip_driver(name=GLOBAL_NAME):
    return ROUNDTRIP_DRIVER % {"name": name, "ns": XHTML_NS}


def structured_driver(name=GLOBAL_NAME):
    return STRUCTURED_DRIVER % {"name": name}


def iframe_rebuild_driver(selector, name=GLOBAL_NAME):
    return IFRAME_REBUILD_DRIVER % {"name": name, "selector": json.dumps(selector)}


def compose(bundle, driver):
    return f"{bundle};\n{driver}"


def load_direct(page, url):
    try:
        page.goto(url, wait_until="load")
    except PlaywrightTimeoutError as e:
        raise NavigationTimeout(f"timed out loading {url}: {e.message}") from e
    except PlaywrightError as e:
        raise ScenarioError(f"could not load {url}: {e.message}") from e


def load_indirect(page, base_url, html):
    """Navigate to ``base_url`` then swap in ``html`` so relative URLs resolve there."""
    load_direct(page, base_url)
    try:
        page.set_content(html, wait_until="load")
    except PlaywrightTimeoutError as e:
        raise NavigationTimeout(f"timed out setting content on {base_url}: {e.message}") from e
    except PlaywrightError as e:
        raise ScenarioError(f"could not set content on {base_url}: {e.message}") from e


DEADLINE_MESSAGE = "roundtrip evaluation deadline exceeded"

# Runtime.evaluate's own timeout stops synchronous loops; the race stops
# promises that never settle.
DEADLINE_WRAPPER = """
Promise.race([
  new Promise((resolve) => resolve((0, eval)(%(source)s))),
  new Promise((_, reject) => setTimeout(() => reject(new Error('%(message)s')), %(ms)d)),
])
"""


def wait_for_frames(page, settle=100, rounds=20):
    """Wait for every frame to load, including frames inserted after the main load."""
    waited = []
    for _ in range(rounds):
        pending = [frame for frame in page.frames if frame not in waited]
        if not pending and waited:
            return
        for frame in pending:
            try:
                frame.wait_for_load_state("load")
            except PlaywrightTimeoutError as e:
                raise NavigationTimeout(f"frame {frame.url} never finished loading") from e
            waited.append(frame)
        page.wait_for_timeout(settle)
    raise NavigationTimeout(f"frames were still being added after {rounds} rounds")


def evaluate_with_deadline(page, script, timeout):
    expression = DEADLINE_WRAPPER % {
        "source": json.dumps(script),
        "message": DEADLINE_MESSAGE,
        "ms": timeout,
    }
    cdp = page.context.new_cdp_session(page)
    try:
        response = cdp.send("Runtime.evaluate", {
            "expression": expression,
            "returnByValue": True,
            "awaitPromise": True,
            "timeout": timeout,
        })
    except PlaywrightError as e:
        if "terminated" in e.message.lower():
            raise NavigationTimeout(f"evaluation exceeded {timeout}ms") from e
        raise EvaluationError(e.message) from e
    finally:
        try:
            cdp.detach()
        except PlaywrightError as e:
            print(f"Note: could not detach CDP session: {e}")

    details = response.get("exceptionDetails")
    if details:
        exception = details.get("exception")
        # a terminated script reports no exception value, or one saying so
        description = exception.get("description", "") if exception else ""
        if not exception or DEADLINE_MESSAGE in description or "terminated" in description.lower():
            raise NavigationTimeout(f"evaluation exceeded {timeout}ms")
        message = description or exception.get("value", details.get("text", ""))
        raise EvaluationError(str(message))
    return response["result"].get("value")


def evaluate(page, script, timeout=None):
    if timeout is not None:
        return evaluate_with_deadline(page, script, timeout)
    try:
        return page.evaluate(script)
    except PlaywrightTimeoutError as e:
        raise NavigationTimeout(f"evaluation timed out: {e.message}") from e
    except PlaywrightError as e:
        raise EvaluationError(e.message) from e


def evaluate_text(page, script, timeout=None):
    result = evaluate(page, script, timeout)
    if not isinstance(result, str):
        raise SerializationError(
            f"page returned {type(result).__name__}, expected serialized text"
        )
    return result


def evaluate_json(page, script, timeout=None):
    text = evaluate_text(page, script, timeout)
    try:
        return json.loads(text)
    except ValueError as e:
        raise SerializationError(f"page returned invalid JSON: {e}") from e
