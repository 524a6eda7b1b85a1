import json
from collections import namedtuple

from capture.bundle import GLOBAL_NAME
from capture.dom import (
    compose,
    evaluate,
    evaluate_json,
    iframe_rebuild_driver,
    load_direct,
    load_indirect,
    roundtrip_driver,
    structured_driver,
    wait_for_frames,
)
from capture.errors import CheckFailed, GoldenMismatch, ScenarioError
from verify.fixtures import fixture_title
from verify.normalize import format_structured, normalize_markup

FIXTURE_DIR = "html"
ASYNC_IFRAME_PAGE = "iframe-html/main.html"
SHADOW_DOM_PAGE = "html/shadow-dom.html"
COMPAT_MODE_PAGE = "html/compat-mode.html"
COMPAT_TITLE = "correctly triggers backCompat mode and rendering"

# images render ~326px high in BackCompat mode and ~588px in CSS1Compat mode
COMPAT_MAX_HEIGHT = 400

Scenario = namedtuple(
    "Scenario",
    ["title", "url", "content", "driver", "structured", "prepare"],
    defaults=(False, ()),
)

ScenarioResult = namedtuple("ScenarioResult", ["title", "passed", "detail"])


def check_iframe_compat(page):
    outer = evaluate(page, "document.compatMode")
    inner = evaluate(page, 'document.querySelector("iframe").contentDocument.compatMode')
    if outer != "CSS1Compat":
        raise CheckFailed(
            f'{outer} for outer iframe.html should be CSS1Compat as it has "<!DOCTYPE html>"'
        )
    # the inner document omits a doctype; rebuild adds a synthetic one to keep this
    if inner != "BackCompat":
        raise CheckFailed(
            f'{inner} for iframe-inner.html should be BackCompat as it lacks "<!DOCTYPE html>"'
        )


FIXTURE_CHECKS = {
    "iframe.html": (check_iframe_compat,),
}


def fixture_scenario(fixture, server, name=GLOBAL_NAME):
    if fixture.direct:
        url = server.url(f"{FIXTURE_DIR}/{fixture.name}")
        content = None
    else:
        # loading indirectly keeps relative paths resolving against the fixture directory
        url = server.url(f"{FIXTURE_DIR}/")
        content = fixture.content
    return Scenario(
        title=fixture_title(fixture),
        url=url,
        content=content,
        driver=roundtrip_driver(name),
        prepare=FIXTURE_CHECKS.get(fixture.name, ()),
    )


def async_iframe_scenario(server, name=GLOBAL_NAME):
    return Scenario(
        title="snapshot async iframes",
        url=server.url(ASYNC_IFRAME_PAGE),
        content=None,
        driver=structured_driver(name),
        structured=True,
        prepare=(wait_for_frames,),
    )


def shadow_dom_scenario(server, name=GLOBAL_NAME):
    return Scenario(
        title="snapshot shadow DOM",
        url=server.url(SHADOW_DOM_PAGE),
        content=None,
        driver=structured_driver(name),
        structured=True,
    )


def build_scenarios(fixtures, server, name=GLOBAL_NAME):
    scenarios = [fixture_scenario(f, server, name) for f in fixtures]
    scenarios.append(async_iframe_scenario(server, name))
    scenarios.append(shadow_dom_scenario(server, name))
    return scenarios


def capture(page, scenario, bundle, timeout=None):
    result = evaluate_json(page, compose(bundle, scenario.driver), timeout)
    if scenario.structured:
        return format_structured(result)
    return normalize_markup(result["markup"], result["namespaced"])


def run_scenario(session, scenario, bundle, store, artifact_id):
    """Load, capture and golden-compare one scenario; returns the compared text."""
    page = session.new_page()
    try:
        if scenario.content is None:
            load_direct(page, scenario.url)
        else:
            load_indirect(page, scenario.url, scenario.content)
        for step in scenario.prepare:
            step(page)
        actual = capture(page, scenario, bundle, session.timeout)
    finally:
        session.close_page(page)

    comparison = store.compare(actual, artifact_id, scenario.title)
    if not comparison.passed:
        raise GoldenMismatch(scenario.title, comparison.diff)
    return actual


def check_compat_rendering(session, server, bundle, selector="center",
                           max_height=COMPAT_MAX_HEIGHT, name=GLOBAL_NAME):
    page = session.new_page()
    try:
        load_direct(page, server.url(COMPAT_MODE_PAGE))
        compat_mode = evaluate(page, "document.compatMode")
        if compat_mode != "BackCompat":
            raise CheckFailed(
                f"{compat_mode} for compat-mode.html should be BackCompat as DOCTYPE is deliberately omitted"
            )
        height = evaluate(page, f"document.querySelector({json.dumps(selector)}).clientHeight")
        if not height < max_height:
            raise CheckFailed(
                f"pre-check: {selector} should render under {max_height}px in BackCompat mode; getting: {height}px"
            )
        script = compose(bundle, iframe_rebuild_driver(selector, name))
        rebuilt = evaluate_json(page, script, session.timeout)
    finally:
        session.close_page(page)

    if rebuilt["compatMode"] != "BackCompat":
        raise CheckFailed(
            f"rebuilt compatMode should match source compatMode, but doesn't: {rebuilt['compatMode']}"
        )
    if rebuilt["height"] != height:
        raise CheckFailed(
            f"rebuilt height ({rebuilt['height']}) should equal source height ({height})"
        )
    return height


def run_suite(session, server, bundle, store, fixtures, artifact_id, name=GLOBAL_NAME):
    results = []
    for scenario in build_scenarios(fixtures, server, name):
        try:
            run_scenario(session, scenario, bundle, store, artifact_id)
        except ScenarioError as e:
            results.append(ScenarioResult(scenario.title, False, str(e)))
        else:
            results.append(ScenarioResult(scenario.title, True, ""))

    try:
        check_compat_rendering(session, server, bundle, name=name)
    except ScenarioError as e:
        results.append(ScenarioResult(COMPAT_TITLE, False, str(e)))
    else:
        results.append(ScenarioResult(COMPAT_TITLE, True, ""))
    return results
