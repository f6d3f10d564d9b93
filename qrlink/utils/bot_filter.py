import re
from user_agents import parse

# Crawlers, link-preview fetchers and scripted HTTP clients.
BOT_SIGNATURES = [
    "bot", "crawler", "spider", "crawling", "facebookexternalhit",
    "whatsapp", "telegram", "slack", "discord", "preview", "fetch",
    "curl", "wget", "python", "java", "go-http", "axios", "node-fetch",
    "postman", "safelinks", "linkexpander", "google-read-aloud",
]

_BOT_PATTERN = re.compile("|".join(re.escape(s) for s in BOT_SIGNATURES), re.IGNORECASE)


def is_bot(user_agent: str | None) -> bool:
    """Return True when the user-agent belongs to a known bot or crawler.

    Empty or missing user-agents count as human.
    """
    if not user_agent:
        return False

    if _BOT_PATTERN.search(user_agent):
        return True

    return parse(user_agent).is_bot
