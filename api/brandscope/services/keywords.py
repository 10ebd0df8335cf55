"""
Keyword Clustering Service — conversation themes in a brand's recent posts.

Groups posts by their dominant keyword using:
1. Tokenisation with English + Indonesian stop-word removal
2. TF-IDF scoring to pick the most distinctive keywords
3. Assignment of each post to the keyword it mentions most
4. Rule-based theme labels from each cluster's related keywords
"""
import math
import re
from collections import Counter
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional

import structlog

logger = structlog.get_logger()

INDONESIAN_STOPWORDS = {
    "yang", "dan", "di", "dari", "ini", "itu", "dengan", "untuk", "pada", "ke",
    "adalah", "oleh", "tidak", "dalam", "ada", "akan", "juga", "saya", "kamu",
    "dia", "mereka", "kami", "kita", "atau", "tetapi", "karena", "jika", "sudah",
    "belum", "dapat", "bisa", "harus", "sangat", "lebih", "paling", "saat", "waktu",
    "bagi", "sebagai", "sebuah", "suatu", "seperti", "nya", "lah", "kah", "tah",
    "telah", "masih", "maka", "serta", "antara", "sambil", "tanpa", "agar",
}

ENGLISH_STOPWORDS = {
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "from", "as", "is", "was", "are", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could", "should",
    "may", "might", "must", "can", "this", "that", "these", "those", "i", "you",
    "he", "she", "it", "we", "they", "them", "their", "what", "which", "who",
    "when", "where", "why", "how", "all", "each", "every", "both", "few", "more",
    "most", "other", "some", "such", "no", "nor", "not", "only", "own", "same",
    "so", "than", "too", "very", "just", "about", "get", "got", "like", "rt", "via",
}

STOPWORDS = INDONESIAN_STOPWORDS | ENGLISH_STOPWORDS

# First match wins
THEME_RULES = [
    (re.compile(r"produk|product|launch|new|baru|rilis"), "Product Launch & Features"),
    (re.compile(r"promo|diskon|sale|discount|offer|deal"), "Promotions & Offers"),
    (re.compile(r"service|pelayanan|help|bantuan|support"), "Customer Service"),
    (re.compile(r"event|acara|festival|celebration"), "Events & Campaigns"),
    (re.compile(r"brand|quality|kualitas|best|terbaik"), "Brand Positioning"),
    (re.compile(r"community|komunitas|fans|followers|love"), "Community Engagement"),
]

_URL_RE = re.compile(r"https?://\S+")
_MENTION_RE = re.compile(r"@\w+")
_PUNCT_RE = re.compile(r"[^\w\s#]")


@dataclass
class KeywordCluster:
    cluster_id: int
    top_keyword: str
    keywords: list[str]
    post_count: int
    posts: list[dict] = field(default_factory=list)
    average_engagement: float = 0.0
    theme: str = "General Discussion"
    sentiment: str = "neutral"


@dataclass
class KeywordStat:
    keyword: str
    frequency: int
    avg_engagement: float


@dataclass
class BrandKeywordAnalysis:
    brand: str
    platform: str
    total_posts: int
    clusters: list[KeywordCluster] = field(default_factory=list)
    top_keywords: list[KeywordStat] = field(default_factory=list)
    conversation_themes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def post_text(post: dict) -> str:
    return str(post.get("text") or post.get("caption") or post.get("content") or post.get("title") or "").lower()


def post_engagement(post: dict) -> int:
    return sum(int(post.get(k) or 0) for k in ("likes", "comments", "shares", "retweets", "engagement"))


def _post_date(post: dict) -> str:
    return post.get("published_at") or post.get("created_at") or post.get("timestamp") or post.get("date") \
        or datetime.utcnow().isoformat()


def tokenize(text: str) -> list[str]:
    text = _URL_RE.sub("", text)
    text = _MENTION_RE.sub("", text)
    words = _PUNCT_RE.sub(" ", text).split()
    return [w for w in words if len(w) > 2 and w not in STOPWORDS and not w.isdigit()]


def tfidf(documents: list[list[str]]) -> list[dict[str, float]]:
    n_docs = len(documents)
    df = Counter(word for doc in documents for word in set(doc))
    scores = []
    for doc in documents:
        tf = Counter(doc)
        scores.append({
            word: (count / len(doc)) * math.log(n_docs / df[word])
            for word, count in tf.items()
        })
    return scores


def top_keywords(scores: list[dict[str, float]], top_n: int = 15) -> list[str]:
    total: Counter = Counter()
    for doc_scores in scores:
        total.update(doc_scores)
    return [word for word, _ in sorted(total.items(), key=lambda kv: kv[1], reverse=True)[:top_n]]


def infer_theme(keywords: list[str]) -> str:
    joined = " ".join(keywords).lower()
    for pattern, theme in THEME_RULES:
        if pattern.search(joined):
            return theme
    return "General Discussion"


def _primary_keyword(tokens: list[str], keywords: list[str]) -> Optional[str]:
    best, best_count = None, 0
    for kw in keywords:
        count = sum(1 for t in tokens if kw in t or t in kw)
        if count > best_count:
            best, best_count = kw, count
    return best


def cluster_by_keywords(posts: list[dict], keywords: list[str], min_cluster_size: int = 3) -> list[KeywordCluster]:
    grouped: dict[str, list[dict]] = {}
    for post in posts:
        primary = _primary_keyword(tokenize(post_text(post)), keywords)
        if primary:
            grouped.setdefault(primary, []).append(post)

    clusters = []
    for keyword, members in grouped.items():
        if len(members) < min_cluster_size:
            continue
        related = [w for w, _ in Counter(t for p in members for t in tokenize(post_text(p))).most_common(5)]
        engagement = [post_engagement(p) for p in members]
        clusters.append(KeywordCluster(
            cluster_id=len(clusters),
            top_keyword=keyword,
            keywords=related,
            post_count=len(members),
            posts=[
                {"text": post_text(p), "date": _post_date(p), "engagement": e}
                for p, e in zip(members, engagement)
            ],
            average_engagement=sum(engagement) / len(members),
            theme=infer_theme(related),
        ))
    return sorted(clusters, key=lambda c: c.post_count, reverse=True)


def analyze_keywords(posts: list[dict], brand: str, platform: str, max_posts: int = 40) -> BrandKeywordAnalysis:
    """Cluster the most recent `max_posts` posts of one brand on one platform."""
    recent = posts[:max_posts]
    if not recent:
        return BrandKeywordAnalysis(brand=brand, platform=platform, total_posts=0)

    documents = [tokenize(post_text(p)) for p in recent]
    keywords = top_keywords(tfidf(documents), 15)
    clusters = cluster_by_keywords(recent, keywords, 3)

    stats: dict[str, list[int]] = {}
    keyword_set = set(keywords)
    for post, tokens in zip(recent, documents):
        engagement = post_engagement(post)
        for token in tokens:
            if token in keyword_set:
                stats.setdefault(token, []).append(engagement)

    top = sorted(
        (KeywordStat(kw, len(engs), sum(engs) / len(engs)) for kw, engs in stats.items()),
        key=lambda s: s.frequency, reverse=True,
    )[:10]

    themes = list(dict.fromkeys(c.theme for c in clusters))
    logger.info("keywords: analyzed", brand=brand, platform=platform,
                posts=len(recent), clusters=len(clusters))
    return BrandKeywordAnalysis(
        brand=brand, platform=platform, total_posts=len(recent),
        clusters=clusters, top_keywords=top, conversation_themes=themes,
    )
