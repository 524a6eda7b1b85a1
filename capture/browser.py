from contextlib import contextmanager

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from capture.errors import SetupError


class Session:
    def __init__(self, pw, browser, timeout=5000):
        self.pw = pw
        self.browser = browser
        self.timeout = timeout
        self.pages = []

    def new_page(self):
        page = self.browser.new_page()
        # scenario deadline
        page.set_default_navigation_timeout(self.timeout)
        page.set_default_timeout(self.timeout)
        # console for debug
        page.on("console", lambda msg: print(msg.text))
        self.pages.append(page)
        return page

    def close_page(self, page):
        if page in self.pages:
            self.pages.remove(page)
        try:
            page.close()
        except PlaywrightError as e:
            print(f"Note: could not close page: {e}")

    def close(self):
        for page in list(self.pages):
            self.close_page(page)
        try:
            self.browser.close()
        except PlaywrightError as e:
            print(f"Note: could not close browser: {e}")
        try:
            self.pw.stop()
        except Exception as e:
            print(f"Note: could not stop playwright: {e}")


def launch_browser(headless=True, timeout=5000):
    pw = sync_playwright().start()
    try:
        browser = pw.chromium.launch(headless=headless)
    except PlaywrightError as e:
        pw.stop()
        raise SetupError(f"could not launch chromium: {e}") from e
    return Session(pw, browser, timeout)


@contextmanager
def open_session(headless=True, timeout=5000):
    session = launch_browser(headless=headless, timeout=timeout)
    try:
        yield session
    finally:
        session.close()
