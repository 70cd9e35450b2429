"""
Suggestion Generation Service — Claude-powered shopping suggestions.

Given a contact and a gift, asks Claude for concrete products that fit the
contact's interests and the gift budget. Two request shapes exist:

- batch:    4-5 options across different categories (new gift lists)
- category: exactly 1 option in a named category (reshopping one item)

Claude is told never to return URLs; every option comes back as product
details plus search terms, and is persisted as a Suggested shopping option
that a person links to a real store later.

The same generator answers two related questions with live web context:

- flowers:  4 deliverable arrangements (with store URLs) for a contact,
            an occasion and a budget range
- affiliate programs: which of a set of stores run an affiliate program,
            with signup URL and commission rate

The generator never raises. Missing configuration, API errors and
unparseable responses are logged and produce an empty list, which callers
present as "no ideas found" with a manual-entry fallback. There are no
retries; the user re-triggers the action.
"""

import json
import logging
from datetime import date
from typing import Any, Optional, Protocol

from anthropic import AsyncAnthropic

from giftplanner.core.config import (
    ANTHROPIC_API_KEY,
    ANTHROPIC_MODEL,
    DEFAULT_GIFT_BUDGET,
    SUGGESTION_WEB_SEARCH,
    is_anthropic_configured,
)
from giftplanner.models.entities import Contact, Gift
from giftplanner.models.reports import AffiliateProgramInfo, StoreStats
from giftplanner.models.shopping import (
    FlowerArrangement,
    FlowerOrderRequest,
    SuggestedOption,
)

logger = logging.getLogger(__name__)

# ======================================================================
# Constants
# ======================================================================

CLAUDE_MAX_TOKENS = 4096
WEB_SEARCH_MAX_USES = 5
BATCH_OPTION_RANGE = "4-5"

CATEGORY_DESCRIPTIONS: dict[str, str] = {
    "electronics": "Electronics/Tech",
    "fashion": "Fashion/Accessories",
    "home": "Home/Living",
    "books": "Books/Media",
    "health": "Health/Beauty",
    "outdoors": "Outdoors/Sports",
    "toys": "Toys/Games",
}

OPTIONS_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "options": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "category": {"type": "string"},
                    "target_interest": {"type": "string"},
                    "estimated_price": {"type": "number"},
                    "key_features": {"type": "array", "items": {"type": "string"}},
                    "search_terms": {"type": "string"},
                },
                "required": ["title", "description", "category", "search_terms"],
            },
        },
    },
    "required": ["options"],
}

REQUIRED_OPTION_KEYS = set(
    OPTIONS_RESPONSE_SCHEMA["properties"]["options"]["items"]["required"]
)

FLOWER_ARRANGEMENT_COUNT = 4

FLOWER_SERVICES = [
    "1-800-Flowers",
    "FTD",
    "Teleflora",
    "ProFlowers",
    "Local florists",
    "The Bouqs Company",
    "UrbanStems",
]

FLOWER_OCCASION_LABELS: dict[str, str] = {
    "just_because": "Just Because",
    "birthday": "Birthday",
    "anniversary": "Anniversary",
    "apology": "Apology",
    "congratulations": "Congratulations",
    "sympathy": "Sympathy",
    "get_well": "Get Well Soon",
    "thank_you": "Thank You",
}

FLOWERS_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "arrangements": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "description": {"type": "string"},
                    "price": {"type": "number"},
                    "original_price": {"type": "number"},
                    "store_name": {"type": "string"},
                    "store_url": {"type": "string"},
                    "image_url": {"type": "string"},
                    "rating": {"type": "number"},
                    "same_day_delivery": {"type": "boolean"},
                    "color_match": {"type": "string"},
                    "occasion_fit": {"type": "string"},
                },
                "required": ["name", "description", "price", "store_name", "store_url"],
            },
        },
    },
    "required": ["arrangements"],
}

REQUIRED_ARRANGEMENT_KEYS = set(
    FLOWERS_RESPONSE_SCHEMA["properties"]["arrangements"]["items"]["required"]
)

AFFILIATE_PROGRAMS_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "affiliate_programs": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "store_name": {"type": "string"},
                    "domain": {"type": "string"},
                    "has_program": {"type": "boolean"},
                    "program_name": {"type": "string"},
                    "signup_url": {"type": "string"},
                    "commission_rate": {"type": "string"},
                    "notes": {"type": "string"},
                },
                "required": ["store_name", "domain", "has_program"],
            },
        },
    },
    "required": ["affiliate_programs"],
}

REQUIRED_PROGRAM_KEYS = set(
    AFFILIATE_PROGRAMS_RESPONSE_SCHEMA["properties"]["affiliate_programs"]["items"]["required"]
)


class SuggestionGenerator(Protocol):
    """Anything that can propose shopping options, flowers and affiliate programs."""

    async def generate(
        self,
        contact: Contact,
        gift: Gift,
        category: Optional[str] = None,
    ) -> list[SuggestedOption]:
        ...

    async def suggest_flowers(
        self,
        contact: Contact,
        request: FlowerOrderRequest,
    ) -> list[FlowerArrangement]:
        ...

    async def find_affiliate_programs(
        self,
        stores: list[StoreStats],
    ) -> list[AffiliateProgramInfo]:
        ...


# ======================================================================
# System prompts
# ======================================================================

SUGGESTION_SYSTEM_PROMPT = f"""\
You are a world-class personal shopper. You find specific, currently \
available products that make great gifts for a particular person.

Rules:
1. Respect the budget as a strict maximum per item, and prefer the \
lowest-cost option that still fits.
2. Every product must be relevant to the recipient's interests and \
appropriate for their age.
3. Favor items that are currently trending, popular, or highly rated.
4. Name a SPECIFIC product: brand and model.
5. CRITICAL: Do NOT provide any URLs or links. Only product details.

Return ONLY a JSON object matching this JSON schema. No markdown, no code \
fences, no explanation:
{json.dumps(OPTIONS_RESPONSE_SCHEMA)}"""

FLOWER_SYSTEM_PROMPT = f"""\
You are a florist concierge. You find flower arrangements that can be \
ordered online right now from delivery services, and you compare them on \
price, delivery speed and customer ratings.

Rules:
1. Every arrangement's current price must fall inside the budget range.
2. store_url must be the real product page for that arrangement on the \
store's own website.
3. Prefer arrangements that match the recipient's favorite colors and \
suit the occasion.

Return ONLY a JSON object matching this JSON schema. No markdown, no code \
fences, no explanation:
{json.dumps(FLOWERS_RESPONSE_SCHEMA)}"""

AFFILIATE_PROGRAMS_SYSTEM_PROMPT = f"""\
You research affiliate marketing programs for online retailers. Only \
report programs you can confirm exist; never invent signup URLs.

Return ONLY a JSON object matching this JSON schema. No markdown, no code \
fences, no explanation:
{json.dumps(AFFILIATE_PROGRAMS_RESPONSE_SCHEMA)}"""


# ======================================================================
# Prompt construction
# ======================================================================

def category_description(category: Optional[str]) -> str:
    if not category:
        return "General items"
    return CATEGORY_DESCRIPTIONS.get(category.lower(), "General items")


def _recipient_lines(contact: Contact, gift: Gift, today: Optional[date]) -> list[str]:
    age = contact.age(today)
    budget = gift.budget or DEFAULT_GIFT_BUDGET
    prefs = contact.preferences
    interests = ", ".join(prefs.hobbies) if prefs.hobbies else "general interests"

    lines = [
        "=== RECIPIENT ===",
        f"Age: {age}",
        f"Gender: {contact.gender or 'person'}",
        f"Interests: {interests}",
    ]
    if prefs.favorite_colors:
        lines.append(f"Favorite colors: {', '.join(prefs.favorite_colors)}")
    if prefs.style:
        lines.append(f"Style: {prefs.style}")
    if prefs.sizes:
        sizes = ", ".join(f"{k}: {v}" for k, v in sorted(prefs.sizes.items()))
        lines.append(f"Sizes: {sizes}")

    lines.append("\n=== BUDGET ===")
    lines.append(f"Strict maximum per item: ${budget:.2f}")
    return lines


def build_batch_prompt(contact: Contact, gift: Gift, today: Optional[date] = None) -> str:
    """Prompt for a full batch of options spread across categories."""
    parts = [
        f"Find {BATCH_OPTION_RANGE} specific product gift ideas for a "
        f"{contact.age(today)}-year-old {contact.gender or 'person'}.\n",
    ]
    parts.extend(_recipient_lines(contact, gift, today))
    if gift.description:
        parts.append(f"\nNotes about this gift: {gift.description}")
    parts.append(
        "\nCover different categories (electronics, fashion, home, books, "
        "health, outdoors, toys). For each product give: the specific product "
        "name with brand and model, why it suits their interests, your best "
        "lowest-cost price estimate within the budget, a category, key "
        "features, and the best search terms to find this exact product online."
    )
    return "\n".join(parts)


def build_category_prompt(
    contact: Contact,
    gift: Gift,
    category: str,
    today: Optional[date] = None,
) -> str:
    """Prompt for exactly one option in a single category."""
    parts = [
        f'Find exactly 1 specific product gift idea in the "{category_description(category)}" '
        f"category for a {contact.age(today)}-year-old {contact.gender or 'person'}.\n",
    ]
    parts.extend(_recipient_lines(contact, gift, today))
    parts.append(
        f'\nSet "category" to "{category}". Give the specific product name with '
        "brand and model, why it suits their interests, your best lowest-cost "
        "price estimate within the budget, and the best search terms to find "
        "this exact product online."
    )
    return "\n".join(parts)


def flower_occasion_label(occasion_type: str) -> str:
    return FLOWER_OCCASION_LABELS.get(occasion_type, occasion_type.replace("_", " "))


def build_flower_prompt(contact: Contact, request: FlowerOrderRequest) -> str:
    """Prompt for a fixed number of deliverable flower arrangements."""
    colors = contact.preferences.favorite_colors
    lines = [
        f"Find the best flower arrangements for {contact.name} with these requirements:\n",
        f"- Budget range: ${request.budget_min:.0f} - ${request.budget_ceiling:.0f}",
        f"- Relationship: {contact.relationship or 'not specified'}",
        f"- Occasion: {flower_occasion_label(request.occasion_type)}",
        f"- Favorite colors: {', '.join(colors) if colors else 'any'}",
        "\nSearch these major flower delivery services:",
    ]
    lines.extend(f"- {service}" for service in FLOWER_SERVICES)
    lines.append(
        "\nFor each arrangement find the current price within budget, the store "
        "with the best price/value, same-day or next-day delivery availability, "
        "customer ratings, and how well it matches the color preferences."
    )
    lines.append(f"\nReturn exactly {FLOWER_ARRANGEMENT_COUNT} flower arrangements.")
    return "\n".join(lines)


def build_affiliate_programs_prompt(stores: list[StoreStats]) -> str:
    """Prompt asking which of the given stores run an affiliate program."""
    store_lines = "\n".join(f"- {s.name} ({s.domain})" for s in stores)
    return (
        "For each of these stores, provide their affiliate program information "
        f"if available:\n\n{store_lines}\n\n"
        "Only include stores that actually have affiliate programs."
    )


# ======================================================================
# Response parsing
# ======================================================================

def _response_text(response: Any) -> str:
    """Concatenate the text blocks of a Messages API response."""
    return "".join(
        getattr(block, "text", "") for block in response.content
        if getattr(block, "type", None) == "text"
    ).strip()


def _extract_json_object(text: str) -> dict[str, Any]:
    # Strip markdown code fences if Claude added them
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else text[3:]
    if text.endswith("```"):
        text = text[:-3].strip()
    if text.startswith("json"):
        text = text[4:].strip()

    # Web-search answers may wrap the JSON in a sentence or two
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        raise json.JSONDecodeError("No JSON object found", text, 0)
    payload = json.loads(text[start:end + 1])
    if not isinstance(payload, dict):
        raise json.JSONDecodeError("Top-level JSON is not an object", text, start)
    return payload


def parse_options_payload(payload: Any) -> list[SuggestedOption]:
    """
    Validate the "options" array of a response into SuggestedOption objects.

    Entries missing a required key, or that fail validation, are skipped.
    A missing or non-list "options" yields no options.
    """
    if not isinstance(payload, dict):
        return []
    raw_options = payload.get("options")
    if not isinstance(raw_options, list):
        return []

    options: list[SuggestedOption] = []
    for raw in raw_options:
        if not isinstance(raw, dict) or not REQUIRED_OPTION_KEYS.issubset(raw.keys()):
            logger.debug("Skipping incomplete suggestion: %s", raw)
            continue
        try:
            options.append(SuggestedOption(
                title=str(raw["title"])[:200],
                description=str(raw["description"])[:1000],
                category=str(raw["category"]),
                target_interest=raw.get("target_interest"),
                estimated_price=raw.get("estimated_price"),
                key_features=[str(f) for f in raw.get("key_features") or []][:10],
                search_terms=str(raw["search_terms"]),
            ))
        except ValueError as exc:
            logger.debug("Skipping invalid suggestion %r: %s", raw.get("title"), exc)
    return options


def _payload_items(payload: Any, key: str, required: set[str]) -> list[dict[str, Any]]:
    if not isinstance(payload, dict) or not isinstance(payload.get(key), list):
        return []
    items = []
    for raw in payload[key]:
        if isinstance(raw, dict) and required.issubset(raw.keys()):
            items.append(raw)
        else:
            logger.debug("Skipping incomplete %s entry: %s", key, raw)
    return items


def parse_flowers_payload(payload: Any) -> list[FlowerArrangement]:
    """Arrangements from an "arrangements" array; invalid entries are skipped."""
    arrangements: list[FlowerArrangement] = []
    for raw in _payload_items(payload, "arrangements", REQUIRED_ARRANGEMENT_KEYS):
        # affiliate fields are ours to fill in, never the model's
        fields = {k: v for k, v in raw.items() if not k.startswith("affiliate_")}
        try:
            arrangements.append(FlowerArrangement.model_validate(fields))
        except ValueError as exc:
            logger.debug("Skipping invalid arrangement %r: %s", raw.get("name"), exc)
    return arrangements


def parse_affiliate_programs_payload(payload: Any) -> list[AffiliateProgramInfo]:
    """Programs from an "affiliate_programs" array; invalid entries are skipped."""
    programs: list[AffiliateProgramInfo] = []
    for raw in _payload_items(payload, "affiliate_programs", REQUIRED_PROGRAM_KEYS):
        fields = {k: v for k, v in raw.items() if k not in ("purchases", "revenue")}
        try:
            programs.append(AffiliateProgramInfo.model_validate(fields))
        except ValueError as exc:
            logger.debug("Skipping invalid affiliate program %r: %s", raw.get("store_name"), exc)
    return programs


# ======================================================================
# Claude-backed generator
# ======================================================================

class ClaudeSuggestionGenerator:
    """SuggestionGenerator backed by the Anthropic Messages API."""

    def __init__(
        self,
        client: Optional[AsyncAnthropic] = None,
        model: str = ANTHROPIC_MODEL,
        web_search: bool = SUGGESTION_WEB_SEARCH,
    ):
        self._client = client
        self.model = model
        self.web_search = web_search

    def _get_client(self) -> AsyncAnthropic:
        if self._client is None:
            self._client = AsyncAnthropic(api_key=ANTHROPIC_API_KEY)
        return self._client

    async def _request_json(self, system: str, prompt: str, subject: str) -> Optional[dict[str, Any]]:
        """
        Send one prompt and return the JSON object in Claude's reply.

        Returns None when Anthropic is not configured, the call fails, or
        the reply holds no JSON object. Failures are logged, never raised.
        """
        if self._client is None and not is_anthropic_configured():
            logger.warning("Anthropic API key not configured — skipping request for %s", subject)
            return None

        request: dict[str, Any] = {
            "model": self.model,
            "max_tokens": CLAUDE_MAX_TOKENS,
            "system": system,
            "messages": [{"role": "user", "content": prompt}],
        }
        if self.web_search:
            request["tools"] = [{
                "type": "web_search_20250305",
                "name": "web_search",
                "max_uses": WEB_SEARCH_MAX_USES,
            }]

        try:
            response = await self._get_client().messages.create(**request)
            return _extract_json_object(_response_text(response))
        except json.JSONDecodeError as exc:
            logger.error("Claude returned invalid JSON for %s: %s", subject, exc)
        except Exception as exc:
            logger.error("Claude request failed for %s: %s", subject, exc)
        return None

    async def generate(
        self,
        contact: Contact,
        gift: Gift,
        category: Optional[str] = None,
    ) -> list[SuggestedOption]:
        """
        Ask Claude for shopping options for a gift.

        Args:
            contact: The recipient (age, gender and preferences shape the prompt).
            gift: The gift being shopped for (budget caps every price).
            category: When given, request a single option in that category.

        Returns:
            Zero or more SuggestedOption objects; at most one when a
            category is given. Never raises.
        """
        if category:
            prompt = build_category_prompt(contact, gift, category)
        else:
            prompt = build_batch_prompt(contact, gift)

        logger.info(
            "Requesting suggestions for gift %s (category: %s, web_search: %s)",
            gift.id, category or "all", self.web_search,
        )
        payload = await self._request_json(SUGGESTION_SYSTEM_PROMPT, prompt, f"gift {gift.id}")
        if payload is None:
            return []

        options = parse_options_payload(payload)
        if category:
            options = options[:1]

        if not options:
            logger.warning("No usable suggestions returned for gift %s", gift.id)
        else:
            logger.info(
                "Generated %d suggestions for gift %s: %s",
                len(options), gift.id, [o.title for o in options],
            )
        return options

    async def suggest_flowers(
        self,
        contact: Contact,
        request: FlowerOrderRequest,
    ) -> list[FlowerArrangement]:
        """Up to FLOWER_ARRANGEMENT_COUNT arrangements with real store URLs. Never raises."""
        logger.info(
            "Requesting flower arrangements for contact %s (%s, $%.0f-$%.0f)",
            contact.id, request.occasion_type, request.budget_min, request.budget_ceiling,
        )
        payload = await self._request_json(
            FLOWER_SYSTEM_PROMPT,
            build_flower_prompt(contact, request),
            f"flowers for contact {contact.id}",
        )
        if payload is None:
            return []
        arrangements = parse_flowers_payload(payload)[:FLOWER_ARRANGEMENT_COUNT]
        if not arrangements:
            logger.warning("No usable flower arrangements returned for contact %s", contact.id)
        return arrangements

    async def find_affiliate_programs(
        self,
        stores: list[StoreStats],
    ) -> list[AffiliateProgramInfo]:
        """Affiliate program details for the given stores. Never raises."""
        if not stores:
            return []
        logger.info("Looking up affiliate programs for %d store(s)", len(stores))
        payload = await self._request_json(
            AFFILIATE_PROGRAMS_SYSTEM_PROMPT,
            build_affiliate_programs_prompt(stores),
            "affiliate program lookup",
        )
        if payload is None:
            return []
        return parse_affiliate_programs_payload(payload)
