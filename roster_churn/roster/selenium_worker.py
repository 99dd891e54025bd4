"""Selenium-driven roster surface: login, scrolling, row text and member detail views."""
from __future__ import annotations

import logging
import re
import signal
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Tuple
from urllib.parse import urlparse

from selenium import webdriver
from selenium.common.exceptions import (
    ElementClickInterceptedException,
    ElementNotInteractableException,
    InvalidSessionIdException,
    NoSuchElementException,
    NoSuchWindowException,
    StaleElementReferenceException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.common.action_chains import ActionChains
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait
from urllib3.exceptions import MaxRetryError, NewConnectionError

from ..config import ScrapeInputs
from .artifacts import ArtifactSink
from .detector import handle_from_href
from .models import RowSnapshot


LOGGER = logging.getLogger(__name__)

SESSION_LOST_ERRORS = (
    ConnectionRefusedError,
    MaxRetryError,
    NewConnectionError,
    InvalidSessionIdException,
    NoSuchWindowException,
)
LOGIN_ERROR_MARKERS = ("Invalid", "incorrect", "error")
DIALOG_SELECTORS = ('[role="dialog"]', '[aria-modal="true"]', 'div[class*="Modal"]')
CONTROL_XPATH = ".//button | .//*[@role='button']"

ROW_SNAPSHOT_SCRIPT = """
const maxChars = arguments[0];
const handleRe = /@([A-Za-z0-9_](?:[A-Za-z0-9_-]*[A-Za-z0-9_])?)(?![A-Za-z0-9_-]|\\.[A-Za-z])/g;
const hrefRe = /\\/(?:@|u\\/)([A-Za-z0-9_-]+)/;
const identities = (el, text) => {
    const ids = new Set();
    for (const m of text.matchAll(handleRe)) ids.add(m[1].toLowerCase());
    for (const a of el.querySelectorAll('a[href]')) {
        const m = (a.getAttribute('href') || '').match(hrefRe);
        if (m) ids.add(m[1].toLowerCase());
    }
    return ids;
};
const matches = [];
for (const el of document.querySelectorAll('body *')) {
    const text = el.innerText || '';
    if (!text || text.length >= maxChars || !/joined/i.test(text)) continue;
    if (identities(el, text).size === 1) matches.push(el);
}
// Outermost container that still holds a single member.
const rows = matches.filter(el => !matches.some(other => other !== el && other.contains(el)));
return rows.map(el => ({
    text: el.innerText || '',
    hrefs: Array.from(el.querySelectorAll('a[href]')).map(a => a.getAttribute('href') || ''),
}));
"""


class SurfaceUnavailableError(RuntimeError):
    """The browser session can no longer be driven."""


@dataclass(frozen=True)
class SeleniumConfig:
    headless: bool = True
    window_size: str = "1280,800"
    chrome_binary: Optional[Path] = None
    page_load_timeout: float = 30.0
    element_timeout: float = 10.0
    login_page_settle: float = 2.0
    login_settle: float = 5.0
    community_settle: float = 3.0
    roster_settle: float = 8.0
    max_ancestor_depth: int = 8
    max_row_chars: int = 1500
    activation_labels: Tuple[str, ...] = ("Membership", "Manage membership", "Edit membership", "Manage")
    dismiss_labels: Tuple[str, ...] = ("Cancel", "Close")


def _label_pattern(labels: Tuple[str, ...]) -> re.Pattern:
    alternatives = "|".join(re.escape(label) for label in labels)
    return re.compile(rf"^\s*(?:{alternatives})\s*$", re.IGNORECASE)


def login_error_markers(page_source: Optional[str]) -> List[str]:
    """Return the error markers present in post-login page content."""

    if not page_source:
        return []
    return [marker for marker in LOGIN_ERROR_MARKERS if marker in page_source]


class SeleniumWorker:
    """Owns the Chrome driver and exposes the roster surface to the pipeline."""

    def __init__(self, config: SeleniumConfig, sink: Optional[ArtifactSink] = None) -> None:
        self._config = config
        self._sink = sink
        self._driver: webdriver.Chrome | None = None
        self._activation_re = _label_pattern(config.activation_labels)
        self._dismiss_re = _label_pattern(config.dismiss_labels)

    # ------------------------------------------------------------------
    # Lifecycle helpers
    # ------------------------------------------------------------------
    def _init_driver(self) -> None:
        if self._driver:
            self._driver.quit()
        options = webdriver.ChromeOptions()
        if self._config.chrome_binary:
            options.binary_location = str(self._config.chrome_binary)
        if self._config.headless:
            options.add_argument("--headless=new")
        options.add_argument(f"--window-size={self._config.window_size}")
        options.add_argument("--disable-blink-features=AutomationControlled")
        options.add_experimental_option("excludeSwitches", ["enable-automation"])
        options.add_experimental_option("useAutomationExtension", False)

        # Ignore SIGINT while chromedriver starts so Ctrl+C reaches Python, not the driver.
        old_sigint_handler = signal.signal(signal.SIGINT, signal.SIG_IGN)
        try:
            self._driver = webdriver.Chrome(options=options)
        finally:
            signal.signal(signal.SIGINT, old_sigint_handler)

        self._driver.set_page_load_timeout(self._config.page_load_timeout)
        self._driver.execute_script(
            "Object.defineProperty(navigator, 'webdriver', {get: () => undefined})"
        )

    def _require_driver(self) -> webdriver.Chrome:
        if not self._driver:
            self._init_driver()
        assert self._driver is not None
        return self._driver

    def quit(self) -> None:
        if self._driver:
            try:
                self._driver.quit()
            except WebDriverException as exc:
                LOGGER.debug("Ignoring error while quitting driver: %s", exc)
            self._driver = None

    @contextmanager
    def _connection_guard(self, action: str) -> Iterator[None]:
        try:
            yield
        except SESSION_LOST_ERRORS as exc:
            LOGGER.error("Driver connection lost during %s: %s", action, exc)
            raise SurfaceUnavailableError(f"Browser session lost during {action}") from exc

    def _execute(self, script: str, *args):
        driver = self._require_driver()
        with self._connection_guard("script execution"):
            return driver.execute_script(script, *args)

    @staticmethod
    def _apply_delay(seconds: float, label: str) -> None:
        if seconds <= 0:
            return
        LOGGER.debug("Delay %.2fs (%s)", seconds, label)
        time.sleep(seconds)

    def capture(self, name: str) -> None:
        """Best-effort screenshot into the artifact sink."""

        if self._sink is None or self._driver is None:
            return
        try:
            data = self._driver.get_screenshot_as_png()
        except WebDriverException as exc:
            LOGGER.warning("Could not capture screenshot %s: %s", name, exc)
            return
        self._sink.save_snapshot(name, data, content_type="image/png")

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    def login(self, inputs: ScrapeInputs) -> bool:
        """Log in with email + password; returns False when the session looks unauthenticated."""

        driver = self._require_driver()
        LOGGER.info("VISITING login page %s", inputs.login_url)
        with self._connection_guard("login"):
            driver.get(inputs.login_url)
            self._apply_delay(self._config.login_page_settle, "login-page-load")
            self.capture("debug-login-page")

            wait = WebDriverWait(driver, self._config.element_timeout)
            email_field = wait.until(EC.presence_of_element_located((By.CSS_SELECTOR, 'input[type="email"]')))
            email_field.clear()
            email_field.send_keys(inputs.email)
            LOGGER.debug("Email entered")

            password_field = wait.until(EC.presence_of_element_located((By.CSS_SELECTOR, 'input[type="password"]')))
            password_field.clear()
            password_field.send_keys(inputs.password)
            LOGGER.debug("Password entered")

            self.capture("debug-pre-login")
            driver.find_element(By.CSS_SELECTOR, 'button[type="submit"]').click()

            redirected = True
            try:
                WebDriverWait(driver, self._config.page_load_timeout).until(
                    lambda d: not urlparse(d.current_url).path.rstrip("/").endswith("/login")
                )
                LOGGER.info("Login redirect detected")
            except TimeoutException:
                redirected = False
                LOGGER.warning("⚠️  Still on the login page after %.0fs", self._config.page_load_timeout)

            self._apply_delay(self._config.login_settle, "post-login")
            self.capture("debug-post-login")
            LOGGER.debug("Current URL after login: %s", driver.current_url)
            markers = login_error_markers(driver.page_source)

        if markers:
            LOGGER.warning("⚠️  Login may have failed - error text detected on page (%s)", ", ".join(markers))
        return redirected and not markers

    def open_roster(self, inputs: ScrapeInputs) -> None:
        """Visit the community home (to switch into it), then its admin roster."""

        driver = self._require_driver()
        with self._connection_guard("roster navigation"):
            LOGGER.info("VISITING community %s", inputs.community_url)
            driver.get(inputs.community_url)
            self._apply_delay(self._config.community_settle, "community-page")
            self.capture("debug-community-page")

            LOGGER.info("VISITING members page %s", inputs.roster_url)
            driver.get(inputs.roster_url)
            self._apply_delay(self._config.roster_settle, "members-page")
            self.capture("debug-members-page")

    # ------------------------------------------------------------------
    # Scrollable surface
    # ------------------------------------------------------------------
    def content_height(self) -> int:
        height = self._execute(
            "return Math.max(document.body.scrollHeight, document.documentElement.scrollHeight);"
        )
        return int(height or 0)

    def scroll_to_bottom(self) -> None:
        self._execute("window.scrollTo(0, document.body.scrollHeight);")

    def scroll_to_origin(self) -> None:
        self._execute("window.scrollTo(0, 0);")

    # ------------------------------------------------------------------
    # Roster text
    # ------------------------------------------------------------------
    def page_text(self) -> str:
        return self._execute("return document.body ? document.body.innerText : '';") or ""

    def row_snapshots(self) -> List[RowSnapshot]:
        raw_rows = self._execute(ROW_SNAPSHOT_SCRIPT, self._config.max_row_chars) or []
        rows = [
            RowSnapshot(text=row.get("text") or "", hrefs=tuple(row.get("hrefs") or ()))
            for row in raw_rows
            if isinstance(row, dict)
        ]
        LOGGER.debug("Collected %d row-shaped containers", len(rows))
        return rows

    # ------------------------------------------------------------------
    # Member detail view
    # ------------------------------------------------------------------
    def open_member_detail(self, username: str) -> bool:
        """Click the activation control of ``username``'s row; False when none is found."""

        strategies = (
            ("exact-row", lambda: self._control_from_profile_links(username, require_row=True)),
            ("ancestor-proximity", lambda: self._control_from_profile_links(username, require_row=False)),
            ("text-content", lambda: self._control_from_handle_text(username)),
        )
        with self._connection_guard("detail activation"):
            for label, strategy in strategies:
                try:
                    control = strategy()
                except StaleElementReferenceException:
                    LOGGER.debug("Stale element while searching %s control for @%s", label, username)
                    continue
                if control is None:
                    continue
                LOGGER.debug("Activation control for @%s found via %s match", username, label)
                self._click(control)
                return True
        return False

    def detail_text(self) -> str:
        driver = self._require_driver()
        with self._connection_guard("detail extraction"):
            for selector in DIALOG_SELECTORS:
                dialogs = [
                    element
                    for element in driver.find_elements(By.CSS_SELECTOR, selector)
                    if self._is_displayed(element)
                ]
                if dialogs:
                    # The most recently opened dialog is last in document order.
                    return dialogs[-1].text or ""
        return ""

    def dismiss_detail(self) -> None:
        driver = self._require_driver()
        with self._connection_guard("detail dismissal"):
            for selector in DIALOG_SELECTORS:
                for dialog in reversed(driver.find_elements(By.CSS_SELECTOR, selector)):
                    # Closed dialogs can stay mounted but hidden; only the one on screen counts.
                    if not self._is_displayed(dialog):
                        continue
                    control = self._first_control(dialog, self._dismiss_re)
                    if control is not None and self._is_displayed(control):
                        self._click(control)
                        return
            ActionChains(driver).send_keys(Keys.ESCAPE).perform()

    def _profile_links(self, username: str) -> list:
        driver = self._require_driver()
        links = driver.find_elements(
            By.CSS_SELECTOR, f'a[href*="/@{username}"], a[href*="/u/{username}"]'
        )
        return [link for link in links if handle_from_href(link.get_attribute("href")) == username]

    def _control_from_profile_links(self, username: str, *, require_row: bool):
        for link in self._profile_links(username):
            control = self._climb_for_control(link, username, require_row=require_row)
            if control is not None:
                return control
        return None

    def _control_from_handle_text(self, username: str):
        driver = self._require_driver()
        for element in driver.find_elements(By.XPATH, f"//*[contains(text(), '@{username}')]"):
            control = self._climb_for_control(element, username, require_row=False)
            if control is not None:
                return control
        return None

    def _climb_for_control(self, element, username: str, *, require_row: bool):
        for ancestor in self._ancestors(element):
            text = ancestor.text or ""
            if len(text) >= self._config.max_row_chars:
                return None
            if require_row and "joined" not in text.lower():
                continue
            control = self._first_control(ancestor, self._activation_re)
            if control is not None:
                return control
        return None

    def _ancestors(self, element) -> Iterator:
        current = element
        for _ in range(self._config.max_ancestor_depth):
            try:
                current = current.find_element(By.XPATH, "..")
            except NoSuchElementException:
                return
            if (current.tag_name or "").lower() in ("body", "html"):
                return
            yield current

    def _first_control(self, container, label_re: re.Pattern):
        for control in container.find_elements(By.XPATH, CONTROL_XPATH):
            try:
                label = (control.text or "").strip() or (control.get_attribute("aria-label") or "").strip()
            except StaleElementReferenceException:
                continue
            if label and label_re.match(label):
                return control
        return None

    @staticmethod
    def _is_displayed(element) -> bool:
        try:
            return bool(element.is_displayed())
        except StaleElementReferenceException:
            return False

    def _click(self, control) -> None:
        self._execute("arguments[0].scrollIntoView({block: 'center'});", control)
        try:
            control.click()
        except (ElementClickInterceptedException, ElementNotInteractableException):
            LOGGER.debug("Native click blocked; falling back to script click")
            self._execute("arguments[0].click();", control)
