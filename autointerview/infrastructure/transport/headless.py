"""
Headless-browser bot that joins a Google Meet room as the interviewer.

Uses Playwright (optional extra). Captions are read from the page by an
injected observer that calls back into Python; prompts are played by an
injected audio player and echoed in the meeting chat.
"""
import logging
from typing import Any, Callable, List, Optional

from .base import Transport, CandidateJoined, SpeechFragment, TransportDisconnected
from ..audio.speech.tts import AudioHandle
from ...config import BOT_NAME, JOIN_TIMEOUT
from ...interview.errors import TransportError, TransportJoinFailure
from ...interview.schemas import TransportMode

logger = logging.getLogger("transport.headless")

NAME_INPUT_SELECTORS = [
    'input[placeholder="Your name"]',
    'input[aria-label="Your name"]',
]
JOIN_BUTTON_SELECTORS = [
    'button:has-text("Join now")',
    'button:has-text("Ask to join")',
    'button[aria-label="Join now"]',
]
LEAVE_BUTTON_SELECTORS = [
    'button[aria-label="Leave call"]',
    'button[aria-label="Leave meeting"]',
]
CHAT_BUTTON_SELECTOR = 'button[aria-label*="Chat"]'
CHAT_INPUT_SELECTOR = 'textarea[aria-label*="Send a message"]'

BROWSER_ARGS = [
    "--use-fake-ui-for-media-stream",
    "--use-fake-device-for-media-stream",
    "--autoplay-policy=no-user-gesture-required",
]

# Injected into the meeting page. Reports caption blocks (speaker, text),
# closing the previous block when a new one appears, and the participant count.
PAGE_SCRIPT = """
() => {
  if (window.__interviewInstalled) return;
  window.__interviewInstalled = true;

  window.__interviewPlay = async (url) => {
    const ctx = window.__interviewAudioCtx || (window.__interviewAudioCtx = new AudioContext());
    const data = await (await fetch(url)).arrayBuffer();
    const buffer = await ctx.decodeAudioData(data);
    const source = ctx.createBufferSource();
    source.buffer = buffer;
    source.connect(ctx.destination);
    source.start();
    return buffer.duration;
  };

  let current = null;
  let lastText = "";
  let lastSpeaker = null;
  const report = () => {
    const blocks = document.querySelectorAll('div[role="region"][aria-label*="aption"] > div > div');
    if (!blocks.length) return;
    const block = blocks[blocks.length - 1];
    const speaker = (block.querySelector('span') || {}).innerText || null;
    const text = (block.innerText || "").replace(speaker || "", "").trim();
    if (block !== current && current !== null && lastText) {
      window.__interviewCaption(lastSpeaker, lastText, true);
    }
    current = block;
    if (text && text !== lastText) {
      lastText = text;
      lastSpeaker = speaker;
      window.__interviewCaption(speaker, text, false);
    }
  };
  new MutationObserver(report).observe(document.body, {subtree: true, childList: true, characterData: true});

  setInterval(() => {
    const count = document.querySelectorAll('[data-participant-id]').length;
    window.__interviewParticipants(count);
  }, 2000);
}
"""


def _launch_playwright():
    from playwright.async_api import async_playwright
    return async_playwright().start()


class HeadlessMeetingBot(Transport):
    """Chromium bot that sits in the candidate's meeting."""

    mode = TransportMode.HEADLESS_BOT

    def __init__(self,
                 bot_name: str = BOT_NAME,
                 join_timeout: float = JOIN_TIMEOUT,
                 headless: bool = True,
                 playwright_factory: Optional[Callable[[], Any]] = None):
        super().__init__()
        self.bot_name = bot_name
        self.join_timeout = join_timeout
        self.headless = headless
        self._playwright_factory = playwright_factory or _launch_playwright
        self._playwright = None
        self._browser = None
        self.page = None
        self._candidate_seen = False
        self._chat_open = False

    async def join(self, join_url: str) -> None:
        try:
            self._playwright = await self._playwright_factory()
            self._browser = await self._playwright.chromium.launch(headless=self.headless, args=BROWSER_ARGS)
            context = await self._browser.new_context(permissions=["microphone", "camera"])
            self.page = await context.new_page()
            await self.page.expose_function("__interviewCaption", self._on_caption)
            await self.page.expose_function("__interviewParticipants", self._on_participants)
            await self.page.goto(join_url, wait_until="domcontentloaded", timeout=self.join_timeout * 1000)

            await self._fill_first(NAME_INPUT_SELECTORS, self.bot_name)
            if not await self._click_first(JOIN_BUTTON_SELECTORS):
                raise TransportJoinFailure("No join button found on the meeting page")
            await self._wait_for_any(LEAVE_BUTTON_SELECTORS, self.join_timeout)

            await self.page.evaluate(PAGE_SCRIPT)
            # Meet toggles captions with "c"
            await self.page.keyboard.press("c")
        except TransportJoinFailure:
            await self._close_browser()
            raise
        except Exception as e:
            await self._close_browser()
            raise TransportJoinFailure(f"Headless bot could not join {join_url}: {e}") from e

        logger.info(f"Bot joined {join_url} as {self.bot_name}")

    async def _fill_first(self, selectors: List[str], value: str) -> bool:
        for selector in selectors:
            locator = self.page.locator(selector)
            if await locator.count():
                await locator.first.fill(value)
                return True
        logger.debug("No name input found, joining with account name")
        return False

    async def _click_first(self, selectors: List[str]) -> bool:
        for selector in selectors:
            locator = self.page.locator(selector)
            if await locator.count():
                await locator.first.click()
                return True
        return False

    async def _wait_for_any(self, selectors: List[str], timeout: float) -> None:
        await self.page.wait_for_selector(", ".join(selectors), timeout=timeout * 1000)

    def _on_caption(self, speaker: Optional[str], text: str, is_final: bool) -> None:
        self._publish(SpeechFragment(text=text, is_final_segment=bool(is_final), speaker_label=speaker))

    def _on_participants(self, count: int) -> None:
        if count >= 2 and not self._candidate_seen:
            self._candidate_seen = True
            self._publish(CandidateJoined())
        elif count < 2 and self._candidate_seen:
            self._candidate_seen = False
            self._publish(TransportDisconnected(reason="candidate left the meeting"))

    async def send_audio(self, handle: AudioHandle) -> Optional[float]:
        if self.page is None:
            raise TransportError("Bot is not in a meeting")
        duration = await self.page.evaluate("(url) => window.__interviewPlay(url)", handle.as_data_url())
        return float(duration) if duration else None

    async def send_text(self, text: str) -> None:
        if self.page is None:
            raise TransportError("Bot is not in a meeting")
        if not self._chat_open:
            await self.page.click(CHAT_BUTTON_SELECTOR)
            self._chat_open = True
        await self.page.fill(CHAT_INPUT_SELECTOR, text)
        await self.page.keyboard.press("Enter")

    async def leave(self) -> None:
        if self.page is not None:
            try:
                await self._click_first(LEAVE_BUTTON_SELECTORS)
            finally:
                await self._close_browser()
        logger.info("Bot left the meeting")

    async def _close_browser(self) -> None:
        browser, playwright = self._browser, self._playwright
        self.page = None
        self._browser = None
        self._playwright = None
        if browser is not None:
            await browser.close()
        if playwright is not None:
            await playwright.stop()
