"""
Deterministic title analyzer.

Used whenever the LLM analyzer is unavailable or returns something
unusable. Every table maps a category label to substrings; a title matches
a category when any substring occurs in it (case-insensitive, the title is
padded with spaces so word-boundary patterns like " vs " work at the
edges). Singleton fields take the first matching category, list fields keep
every match.
"""
from __future__ import annotations

import re
from collections import Counter

from folio.dna import AestheticDNA, ItemAnalysis, PerformanceDNA, TasteSignals

SENTIMENT_PATTERNS: dict[str, list[str]] = {
    "controversial": ["controversial", "debate", "unpopular opinion", "hot take", "truth about", "exposed", "overrated"],
    "negative": ["worst", "fail", "hate", "terrible", "disaster", "ruined", "never again"],
    "positive": ["best", "amazing", "love", "awesome", "incredible", "perfect", "wholesome"],
    "curious": ["why ", "secret", "mystery", "what happens", "?"],
}

HOOK_PATTERNS: dict[str, list[str]] = {
    "how-to promise": ["how to", "tutorial", "guide", "step by step", "learn ", "explained"],
    "curiosity gap": ["secret", "you won't believe", "what happens", "nobody", "hidden", "revealed"],
    "listicle": [" top ", " reasons", " ways ", " things ", " tips"],
    "question": ["?", " why ", "what if"],
    "challenge": ["challenge", " i tried", "24 hours", "for a week", "attempt"],
    "shock value": ["insane", "crazy", "shocking", "unbelievable", "gone wrong"],
    "personal story": [" my ", " i spent", " i quit", "story"],
    "urgency": [" now", "before it's too late", "stop ", "last chance"],
}

STRUCTURE_PATTERNS: dict[str, list[str]] = {
    "comparison": [" vs ", " vs. ", "versus", "compared", " or "],
    "listicle": [" top ", " reasons", " ways ", " things ", " tips"],
    "how-to": ["how to", "tutorial", "guide", "step by step"],
    "question": ["?"],
    "challenge": ["challenge", "24 hours", "for a week"],
    "reaction": ["reacts", "reaction", "reacting"],
    "story": ["story", " i tried", " i spent", "journey"],
}

FORMAT_PATTERNS: dict[str, list[str]] = {
    "tutorial": ["tutorial", "how to", "guide", "explained", "lesson", "course"],
    "review": ["review", "unboxing", "tested", "worth it"],
    "vlog": ["vlog", "day in the life", "routine", "week in"],
    "skit": ["skit", "prank", "comedy", "sketch"],
    "music": ["song", "remix", "cover", " beat", "official audio", "live set", " mix "],
    "gameplay": ["gameplay", "speedrun", "walkthrough", "let's play"],
    "news": ["news", "breaking", "update", "announced"],
    "compilation": ["compilation", "moments", "best of"],
}

NICHE_PATTERNS: dict[str, list[str]] = {
    "tech": ["tech", "coding", "programming", "python", "javascript", "software", " ai ", "iphone", "computer"],
    "music": ["music", "song", "guitar", "piano", "remix", "album", "dj "],
    "gaming": ["gaming", "minecraft", "fortnite", "gameplay", "speedrun", "nintendo"],
    "fitness": ["workout", "gym", "fitness", "muscle", "running", "yoga"],
    "food": ["recipe", "cooking", "food", "kitchen", "chef", "baking"],
    "finance": ["money", "invest", "stock", "crypto", "budget", "salary"],
    "science": ["science", "physics", "space", "experiment", "biology", "chemistry"],
    "comedy": ["funny", "comedy", "prank", "hilarious", "skit"],
    "travel": ["travel", "trip", "country", "city tour", "abroad"],
    "beauty": ["makeup", "skincare", "beauty", "outfit", "fashion"],
}

AUDIENCE_PATTERNS: dict[str, list[str]] = {
    "beginners": ["beginner", "for dummies", "first time", "basics", " 101", "easy"],
    "developers": ["developer", "programmer", "coding", "programming"],
    "gamers": ["gamer", "gaming", "gameplay"],
    "creators": ["creator", "youtuber", "content", "channel"],
    "students": ["student", "exam", "study", "school"],
}

TONE_PATTERNS: dict[str, list[str]] = {
    "educational": ["tutorial", "how to", "learn", "explained", "guide", "lesson"],
    "competitive": [" vs ", " vs. ", "versus", "battle", "showdown", "ranking"],
    "humorous": ["funny", "lol", "prank", "hilarious", "comedy", "meme"],
    "dramatic": ["shocking", "insane", "crazy", "unbelievable", "exposed", "gone wrong"],
    "inspirational": ["motivation", "inspiring", "dream", "success", "never give up", "changed my life"],
    "relaxed": ["chill", "relax", "lofi", "calm", "asmr", "cozy"],
    "provocative": ["controversial", "unpopular opinion", "hot take", "truth about", "overrated"],
    "nostalgic": ["remember", "throwback", "classic", "old school", "90s", "childhood"],
    "wholesome": ["cute", "wholesome", "heartwarming", "adorable", "kind"],
}

STYLE_PATTERNS: dict[str, list[str]] = {
    "direct address": [" you ", " your ", " you'", "you?"],
    "superlatives": ["best", "worst", " ever", " most ", "greatest"],
    "first person": [" i ", " my ", " i'm ", " me "],
    "question-led": ["?"],
    "exclamatory": ["!"],
    "conversational": [" lol", " tbh", " ngl", "literally"],
    "numeric": [" top ", " 10 ", " 5 ", " 3 ", "100"],
}

TRIGGER_PATTERNS: dict[str, list[str]] = {
    "curiosity": ["secret", "why ", "what happens", "hidden", "revealed", "?"],
    "fomo": ["before it's too late", "don't miss", "last chance", "everyone is"],
    "surprise": ["unexpected", "shocking", "plot twist", "didn't expect", "unbelievable"],
    "humor": ["funny", "hilarious", "prank", "lol"],
    "aspiration": ["success", "rich", "dream", "million", "level up"],
    "nostalgia": ["remember", "throwback", "childhood"],
    "outrage": ["exposed", "scam", "worst", "unpopular opinion"],
}

VOICE_PATTERNS: dict[str, list[str]] = {
    "authoritative": ["explained", "guide", "tutorial", "the truth", "how to", "everything you need"],
    "casual": ["lol", "ngl", "tbh", "vibes", "literally"],
    "storyteller": ["story", " i tried", " i spent", "journey"],
    "hype": ["insane", "crazy", "epic", "!"],
    "analytical": [" vs ", "versus", "compared", "analysis", "review", "data"],
}

COMPLEXITY_PATTERNS: dict[str, list[str]] = {
    "simple": ["beginner", "basics", "easy", "simple", " 101", "for dummies"],
    "advanced": ["advanced", "deep dive", "expert", "internals", "masterclass"],
}

PACING_PATTERNS: dict[str, list[str]] = {
    "fast": ["quick", "fast", "in 60 seconds", "speedrun", "in 1 minute", "#shorts"],
    "slow": ["relaxing", "slow", "calm", "asmr", "lofi", "ambient"],
    "steady": ["step by step", "full", "complete", "explained"],
}

STOPWORDS = {
    "the", "and", "for", "that", "this", "with", "you", "your", "are", "was", "what", "when",
    "from", "have", "they", "will", "just", "about", "into", "than", "then", "them", "there",
    "these", "those", "their", "been", "were", "which", "while", "would", "could", "should",
    "here", "more", "most", "some", "only", "over", "very", "also", "like", "make", "made",
    "does", "doing", "done", "how", "why", "who", "all", "any", "can", "its", "it's", "our",
    "out", "get", "got", "not", "but", "one", "shorts", "video", "official",
}

_WORD_RE = re.compile(r"[a-z0-9']+")


def _padded(title: str) -> str:
    return f" {title.lower()} "


def match_first(title: str, table: dict[str, list[str]], default: str) -> str:
    text = _padded(title)
    for label, patterns in table.items():
        if any(p in text for p in patterns):
            return label
    return default


def match_all(title: str, table: dict[str, list[str]]) -> list[str]:
    text = _padded(title)
    return [label for label, patterns in table.items() if any(p in text for p in patterns)]


def extract_basic_keywords(title: str, limit: int = 5) -> list[str]:
    """Most frequent non-stopword words longer than three characters."""
    words = [w.strip("'") for w in _WORD_RE.findall(title.lower())]
    words = [w for w in words if len(w) > 3 and w not in STOPWORDS]
    return [word for word, _ in Counter(words).most_common(limit)]


def analyze_title(title: str) -> ItemAnalysis:
    performance = PerformanceDNA(
        hooks=match_all(title, HOOK_PATTERNS),
        structure=match_first(title, STRUCTURE_PATTERNS, "statement"),
        length=len(title),
        keywords=extract_basic_keywords(title),
        sentiment=match_first(title, SENTIMENT_PATTERNS, "neutral"),
        predicted_score=50,
        format=match_first(title, FORMAT_PATTERNS, "unknown"),
        niche=match_first(title, NICHE_PATTERNS, "unknown"),
        target_audience=match_first(title, AUDIENCE_PATTERNS, "general"),
    )
    aesthetic = AestheticDNA(
        tone=match_all(title, TONE_PATTERNS),
        voice=match_first(title, VOICE_PATTERNS, "unknown"),
        complexity=match_first(title, COMPLEXITY_PATTERNS, "moderate"),
        style=match_all(title, STYLE_PATTERNS),
        taste_score=50,
        emotional_triggers=match_all(title, TRIGGER_PATTERNS),
        pacing=match_first(title, PACING_PATTERNS, "unknown"),
    )
    return ItemAnalysis(performance=performance, aesthetic=aesthetic, source="patterns")


def taste_signals(title: str) -> TasteSignals:
    return TasteSignals(
        tones=match_all(title, TONE_PATTERNS),
        keywords=extract_basic_keywords(title),
        hooks=match_all(title, HOOK_PATTERNS),
        styles=match_all(title, STYLE_PATTERNS),
    )
