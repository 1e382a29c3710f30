"""
Best-effort book metadata enrichment.

Layers, first hit wins:
  1. local-db     - curated entries for well-known titles
  2. huggingface  - text-generation inference call (httpx)
  3. heuristic    - generic synopsis built from title/author

Only descriptive fields are ever written back; status is never touched.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Optional

import httpx
from flask import current_app

from librarium.errors import NotFound
from librarium.extensions import db
from librarium.models import AuditLog, Book, User
from librarium.services.audit import record_audit
from librarium.services.transaction import atomic

logger = logging.getLogger(__name__)

SOURCE_LOCAL = "local-db"
SOURCE_REMOTE = "huggingface"
SOURCE_HEURISTIC = "heuristic"

GENRES = (
    "Fiction", "Non-Fiction", "Science Fiction", "Fantasy", "Mystery",
    "Biography", "Self-Help", "History", "Science", "Technology",
)
DIFFICULTIES = ("Easy", "Moderate", "Advanced")


@dataclass
class EnrichmentResult:
    synopsis: str = ""
    tags: list = field(default_factory=list)
    genre: str = ""
    difficulty: str = ""
    source: str = SOURCE_HEURISTIC

    def to_dict(self) -> dict:
        return {
            "synopsis": self.synopsis,
            "tags": list(self.tags),
            "genre": self.genre,
            "difficulty": self.difficulty,
            "source": self.source,
        }


KNOWN_BOOKS: dict[str, dict] = {
    "to kill a mockingbird": {
        "synopsis": "Set in the Depression-era South, Scout Finch watches her father, lawyer Atticus Finch, "
                    "defend a Black man falsely accused of assaulting a white woman. The novel explores racial "
                    "injustice, moral courage and the loss of innocence.",
        "tags": ["classic", "social-justice", "coming-of-age", "american-south", "legal-drama"],
        "genre": "Fiction",
        "difficulty": "Moderate",
    },
    "1984": {
        "synopsis": "In a totalitarian state ruled by Big Brother, Winston Smith quietly rebels against the "
                    "Party's control over truth, history and thought. Orwell's dystopia examines surveillance, "
                    "propaganda and the destruction of personal freedom.",
        "tags": ["dystopian", "political", "classic", "surveillance", "totalitarianism"],
        "genre": "Science Fiction",
        "difficulty": "Moderate",
    },
    "the great gatsby": {
        "synopsis": "Nick Carraway recounts the mysterious millionaire Jay Gatsby's pursuit of Daisy Buchanan "
                    "during the Roaring Twenties, a tragic meditation on wealth and the American Dream.",
        "tags": ["classic", "american-dream", "jazz-age", "tragedy", "wealth"],
        "genre": "Fiction",
        "difficulty": "Moderate",
    },
    "dune": {
        "synopsis": "On the desert planet Arrakis, Paul Atreides is drawn into a political and ecological "
                    "struggle over the spice melange and must navigate treachery and prophecy among the Fremen.",
        "tags": ["sci-fi", "epic", "ecology", "politics", "space-opera", "prophecy"],
        "genre": "Science Fiction",
        "difficulty": "Advanced",
    },
    "the hobbit": {
        "synopsis": "Bilbo Baggins is swept from his hobbit-hole by Gandalf and a company of dwarves on a quest "
                    "to reclaim their homeland from the dragon Smaug, and finds a ring that will change "
                    "Middle-earth.",
        "tags": ["fantasy", "adventure", "classic", "quest", "dragons"],
        "genre": "Fantasy",
        "difficulty": "Easy",
    },
    "pride and prejudice": {
        "synopsis": "Elizabeth Bennet navigates marriage, class and reputation in Regency England, and her "
                    "mutual disdain with the proud Mr. Darcy slowly turns into one of literature's best-loved "
                    "romances.",
        "tags": ["classic", "romance", "social-commentary", "british-literature", "regency"],
        "genre": "Fiction",
        "difficulty": "Moderate",
    },
    "atomic habits": {
        "synopsis": "James Clear lays out a framework for building good habits and breaking bad ones through "
                    "small changes that compound into remarkable results.",
        "tags": ["productivity", "habits", "psychology", "self-improvement", "behavioral-science"],
        "genre": "Self-Help",
        "difficulty": "Easy",
    },
    "sapiens": {
        "synopsis": "Yuval Noah Harari traces human history from the emergence of Homo sapiens to the present "
                    "through the Cognitive, Agricultural and Scientific Revolutions.",
        "tags": ["history", "anthropology", "evolution", "civilization", "science"],
        "genre": "Non-Fiction",
        "difficulty": "Moderate",
    },
    "clean code": {
        "synopsis": "Robert C. Martin presents principles and practices for writing readable, maintainable "
                    "software, with worked examples of turning messy code into clean code.",
        "tags": ["programming", "software-engineering", "best-practices", "refactoring", "craftsmanship"],
        "genre": "Technology",
        "difficulty": "Advanced",
    },
    "the pragmatic programmer": {
        "synopsis": "Thomas and Hunt give practical advice on writing flexible, adaptable code and on the "
                    "realities of software projects and career growth.",
        "tags": ["programming", "software-engineering", "career", "best-practices", "pragmatic"],
        "genre": "Technology",
        "difficulty": "Advanced",
    },
}

PROMPT_TEMPLATE = """<s>[INST] You are a librarian. For the book "{title}" by {author}, provide a JSON object with these exact keys:
- "synopsis": 2-3 sentence book summary
- "tags": array of 3-5 keyword tags
- "genre": primary genre ({genres})
- "difficulty": reading level ({difficulties})
Return ONLY valid JSON, nothing else. [/INST]"""

_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)


def lookup_known(title: str) -> Optional[EnrichmentResult]:
    key = (title or "").strip().lower()
    if not key:
        return None

    entry = KNOWN_BOOKS.get(key)
    if entry is None:
        match = next((k for k in KNOWN_BOOKS if k in key or key in k), None)
        entry = KNOWN_BOOKS.get(match) if match else None
    if entry is None:
        return None

    return EnrichmentResult(
        synopsis=entry["synopsis"],
        tags=list(entry["tags"]),
        genre=entry["genre"],
        difficulty=entry["difficulty"],
        source=SOURCE_LOCAL,
    )


def parse_generated_text(text: str) -> Optional[EnrichmentResult]:
    """Pull the first JSON object out of model output; ill-typed keys become empty."""
    m = _JSON_BLOCK.search(text or "")
    if not m:
        return None
    try:
        parsed = json.loads(m.group(0))
    except ValueError:
        return None
    if not isinstance(parsed, dict):
        return None

    tags = parsed.get("tags")
    return EnrichmentResult(
        synopsis=parsed["synopsis"] if isinstance(parsed.get("synopsis"), str) else "",
        tags=[str(t) for t in tags] if isinstance(tags, list) else [],
        genre=parsed["genre"] if isinstance(parsed.get("genre"), str) else "",
        difficulty=parsed["difficulty"] if isinstance(parsed.get("difficulty"), str) else "",
        source=SOURCE_REMOTE,
    )


def fetch_remote(title: str, author: str, *, client: httpx.Client | None = None) -> Optional[EnrichmentResult]:
    cfg = current_app.config
    if not cfg.get("ENRICH_REMOTE", True):
        return None

    headers = {"Content-Type": "application/json"}
    token = cfg.get("HF_API_TOKEN")
    if token:
        headers["Authorization"] = f"Bearer {token}"

    payload = {
        "inputs": PROMPT_TEMPLATE.format(
            title=title,
            author=author,
            genres=", ".join(GENRES),
            difficulties=", ".join(DIFFICULTIES),
        ),
        "parameters": {
            "max_new_tokens": 400,
            "temperature": 0.7,
            "return_full_text": False,
        },
    }

    own_client = client is None
    http = client or httpx.Client(timeout=cfg.get("ENRICH_TIMEOUT", 15.0))
    try:
        resp = http.post(cfg["HF_MODEL_URL"], headers=headers, json=payload)
        if resp.status_code >= 400:
            logger.warning("enrichment API error: status=%s body=%s", resp.status_code, resp.text[:200])
            return None
        data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("enrichment API unavailable: %s", exc)
        return None
    finally:
        if own_client:
            http.close()

    text = ""
    if isinstance(data, list) and data and isinstance(data[0], dict):
        text = data[0].get("generated_text") or ""
    elif isinstance(data, dict):
        text = data.get("generated_text") or ""

    result = parse_generated_text(text)
    if result is None:
        logger.warning("enrichment API returned unparsable output for %r", title)
    return result


def heuristic(title: str, author: str, genre: str | None = None) -> EnrichmentResult:
    return EnrichmentResult(
        synopsis=(
            f'"{title}" is a work by {author}. This book explores its subject matter with depth '
            f"and insight, offering readers a compelling reading experience."
        ),
        tags=[w for w in title.lower().split() if len(w) > 3][:4],
        genre=genre or "Fiction",
        difficulty="Moderate",
        source=SOURCE_HEURISTIC,
    )


def enrich(title: str, author: str, *, genre: str | None = None, client: httpx.Client | None = None) -> EnrichmentResult:
    result = lookup_known(title)
    if result is None:
        result = fetch_remote(title, author, client=client)
    if result is None:
        result = heuristic(title, author, genre)
    logger.info("enrichment for %r resolved from %s", title, result.source)
    return result


def apply_enrichment(*, book_id: int, actor: User, client: httpx.Client | None = None) -> tuple[Book, EnrichmentResult]:
    book = db.session.get(Book, book_id)
    if book is None:
        raise NotFound(f"book {book_id} not found")

    # the remote call happens before any write so a slow or failed call holds no transaction
    result = enrich(book.title, book.author, genre=book.genre, client=client)

    with atomic("apply_enrichment"):
        book.description = result.synopsis or book.description
        book.tags = list(result.tags) if result.tags else book.tags
        book.genre = result.genre or book.genre
        book.difficulty = result.difficulty or book.difficulty

        record_audit(
            actor_id=actor.id,
            book_id=book.id,
            action=AuditLog.Actions.AI_ENRICHED,
            details=f"AI enriched metadata for: {book.title} (source: {result.source})",
        )
    return book, result
