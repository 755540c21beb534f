"""User-agent and source-IP analysis.

A match against a curated bot family is treated as near-proof (confidence 95) and
short-circuits with that family as the bot type.
"""
from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Tuple


@dataclass
class SignalResult:
    is_bot: bool = False
    confidence: float = 0
    signals: List[str] = field(default_factory=list)
    bot_type: Optional[str] = None


def _compile(*patterns: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


KNOWN_BOTS: Dict[str, Tuple[Pattern[str], ...]] = {
    "search_crawler": _compile(
        r"googlebot", r"bingbot", r"slurp", r"duckduckbot", r"baiduspider",
        r"yandexbot", r"sogou", r"exabot", r"facebot", r"ia_archiver",
    ),
    "seo_tool": _compile(
        r"semrushbot", r"ahrefs", r"mj12bot", r"dotbot", r"rogerbot",
        r"screaming frog", r"seokicks", r"blexbot", r"sistrix", r"spyfu",
    ),
    "social_crawler": _compile(
        r"facebookexternalhit", r"twitterbot", r"linkedinbot", r"pinterest",
        r"slackbot", r"whatsapp", r"telegrambot", r"discordbot",
    ),
    "monitoring": _compile(
        r"pingdom", r"uptimerobot", r"statuscake", r"site24x7",
        r"newrelicpinger", r"checkly", r"datadog", r"applebot",
    ),
    "scraper": _compile(
        r"python-requests", r"python-urllib", r"curl", r"wget", r"httpclient", r"java/",
        r"libwww", r"scrapy", r"go-http-client", r"axios", r"node-fetch", r"httpie",
    ),
    "automation": _compile(
        r"phantomjs", r"headlesschrome", r"puppeteer", r"playwright", r"selenium",
        r"webdriver", r"chromedriver", r"geckodriver", r"nightmare", r"cypress",
    ),
}

# Families identified but usually not filtered out of reports
GOOD_BOT_TYPES = frozenset({"search_crawler", "seo_tool", "social_crawler", "monitoring"})

GOOD_BOT_PATTERNS = _compile(
    r"googlebot", r"bingbot", r"slurp", r"duckduckbot",
    r"facebookexternalhit", r"twitterbot", r"linkedinbot", r"applebot",
)

AUTOMATION_INDICATORS = (
    "webdriver", "phantom", "nightmare", "selenium", "puppeteer", "playwright", "headless",
    "__webdriver_unwrapped", "__driver_unwrapped", "__webdriver_script_fn", "__selenium_unwrapped",
    "_Selenium_IDE_Recorder", "callSelenium", "calledSelenium", "_WEBDRIVER_ELEM_CACHE",
    "ChromeDriverw", "driver-evaluate", "webdriver-evaluate", "webdriver-evaluate-response",
    "cdc_", "$cdc_",
)

# Simplified cloud / datacenter prefixes
DATACENTER_PATTERNS = _compile(
    r"^35\.", r"^34\.",                # Google Cloud
    r"^52\.", r"^54\.", r"^3\.",       # AWS
    r"^13\.", r"^104\.",               # Azure
    r"^159\.", r"^185\.",
    r"^192\.30\.", r"^140\.82\.",      # GitHub
    r"^66\.249\.", r"^72\.14\.", r"^74\.125\.", r"^172\.217\.",
    r"^172\.253\.", r"^209\.85\.", r"^216\.239\.",  # Google / Googlebot
)

BROWSER_TOKENS = re.compile(r"chrome|firefox|safari|edge|opera|msie|trident", re.IGNORECASE)
PLATFORM_TOKENS = re.compile(r"windows|mac|linux|android|ios|iphone|ipad", re.IGNORECASE)

KNOWN_BOT_CONFIDENCE = 95
AUTOMATION_INDICATOR_CONFIDENCE = 90

BOT_TYPE_LABELS = {
    "search_crawler": "Search Engine Crawler",
    "seo_tool": "SEO Tool",
    "social_crawler": "Social Media Crawler",
    "monitoring": "Monitoring Service",
    "scraper": "Web Scraper",
    "automation": "Automation/Headless Browser",
    "crawler": "Web Crawler",
    "no_javascript": "No JavaScript (Pixel Only)",
    "bounce_bot": "Bounce Bot",
    "low_engagement": "Low Engagement Bot",
    "unknown": "Unknown Bot",
}


def analyse_user_agent(user_agent: Optional[str]) -> SignalResult:
    if not user_agent or not isinstance(user_agent, str):
        return SignalResult(signals=["no_user_agent"])

    ua = user_agent.lower()
    for bot_type, patterns in KNOWN_BOTS.items():
        if any(p.search(ua) for p in patterns):
            return SignalResult(True, KNOWN_BOT_CONFIDENCE, [f"known_bot:{bot_type}"], bot_type)

    signals = []
    if len(ua) < 20:
        signals.append("short_user_agent")
    if not BROWSER_TOKENS.search(ua):
        signals.append("no_browser_id")
    if not PLATFORM_TOKENS.search(ua):
        signals.append("no_platform")

    for indicator in AUTOMATION_INDICATORS:
        if indicator.lower() in ua:
            signals.append(f"automation:{indicator}")
            return SignalResult(True, AUTOMATION_INDICATOR_CONFIDENCE, signals, "automation")

    suspicion = 0
    if "short_user_agent" in signals:
        suspicion += 20
    if "no_browser_id" in signals:
        suspicion += 30
    if "no_platform" in signals:
        suspicion += 20
    suspicious = suspicion >= 50
    return SignalResult(suspicious, suspicion, signals, "unknown" if suspicious else None)


def analyse_ip(ip_address: Optional[str]) -> SignalResult:
    if not ip_address:
        return SignalResult()
    if any(p.search(ip_address) for p in DATACENTER_PATTERNS):
        return SignalResult(True, 0, ["datacenter_ip"])
    return SignalResult()


def is_known_good_bot(user_agent: Optional[str]) -> bool:
    """Search-engine and social crawlers we want to identify but not necessarily filter."""
    if not user_agent:
        return False
    return any(p.search(user_agent) for p in GOOD_BOT_PATTERNS)


def bot_type_label(bot_type: Optional[str]) -> str:
    return BOT_TYPE_LABELS.get(bot_type or "", "Unknown")
