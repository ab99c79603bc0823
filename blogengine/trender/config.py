"""Topical vocabulary used to score and deduplicate trends."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml

from blogengine.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_KEYWORDS = [
    'makeup', 'skincare', 'beauty', 'cosmetics', 'skin', 'face', 'lips', 'eyes',
    'foundation', 'concealer', 'blush', 'bronzer', 'highlighter', 'mascara',
    'eyeshadow', 'lipstick', 'skincare routine', 'serum', 'moisturizer', 'spf',
    'sunscreen', 'retinol', 'vitamin c', 'hyaluronic', 'niacinamide', 'cleanser',
    'toner', 'exfoliate', 'acne', 'anti-aging', 'glow', 'dewy', 'matte',
    'contour', 'brow', 'lash', 'nail', 'hair', 'hairstyle', 'haircare',
    'fashion', 'style', 'outfit', 'lifestyle', 'wellness', 'self-care',
    'grwm', 'get ready with me', 'tutorial', 'routine', 'favorites', 'drugstore',
    'luxury', 'dupe', 'viral', 'tiktok made me buy', 'holy grail', 'must have',
]

# Short words that still carry meaning when matching titles
DEFAULT_PRESERVE_WORDS = [
    'men', 'man', 'male', 'boy', 'guy',
    'women', 'woman', 'female', 'girl', 'gal',
    'teen', 'kid', 'kids', 'baby', 'mom', 'dad',
    'oily', 'dry', 'acne', 'glow', 'dewy', 'matte',
    'lip', 'eye', 'brow', 'lash', 'nail', 'hair',
    'spf', 'diy', 'bbw', 'asmr',
]

# Evergreen TikTok formats as (topic, tags)
DEFAULT_TIKTOK_CURATED = [
    # Product-focused
    ('viral TikTok beauty products worth the hype', ['viral', 'beauty', 'products']),
    ('drugstore dupes for luxury makeup', ['drugstore', 'dupe', 'makeup']),
    ('skincare ingredients that actually work', ['skincare', 'ingredients']),
    ('makeup products trending on TikTok', ['makeup', 'trending', 'tiktok']),
    ('clean girl makeup essentials', ['clean girl', 'makeup', 'minimal']),
    # Routine-focused
    ('morning skincare routine for glowing skin', ['skincare', 'routine', 'morning']),
    ('nighttime skincare routine tips', ['skincare', 'routine', 'night']),
    ('easy 5 minute makeup routine', ['makeup', 'routine', 'quick']),
    ('get ready with me makeup tips', ['grwm', 'makeup', 'tutorial']),
    # Technique-focused
    ('contour techniques for beginners', ['contour', 'makeup', 'tutorial']),
    ('how to apply blush for your face shape', ['blush', 'makeup', 'tutorial']),
    ('eyebrow shaping tips and tricks', ['brows', 'eyebrows', 'tutorial']),
    ('lip liner techniques for fuller lips', ['lips', 'liner', 'makeup']),
    # Skin concerns
    ('how to get rid of acne fast', ['acne', 'skincare', 'tips']),
    ('anti-aging skincare in your 20s', ['anti-aging', 'skincare', 'prevention']),
    ('how to reduce dark circles', ['dark circles', 'skincare', 'eyes']),
    ('dealing with textured skin', ['texture', 'skincare', 'pores']),
    # Seasonal/current
    ('winter skincare tips for dry skin', ['winter', 'dry skin', 'skincare']),
    ('long lasting makeup for oily skin', ['oily skin', 'makeup', 'tips']),
    ('SPF and sunscreen myths debunked', ['spf', 'sunscreen', 'skincare']),
]

# Keyed by month number (1-12)
DEFAULT_TIKTOK_SEASONAL = {
    1: [('new year skincare reset routine', ['new year', 'skincare', 'reset']),
        ('winter skincare essentials', ['winter', 'skincare'])],
    2: [("Valentine's Day makeup looks", ['valentines', 'makeup', 'date night']),
        ('romantic date night makeup tutorial', ['date night', 'makeup'])],
    3: [('spring skincare transition tips', ['spring', 'skincare']),
        ('fresh spring makeup trends', ['spring', 'makeup', 'trends'])],
    4: [('spring cleaning your makeup collection', ['spring', 'makeup', 'declutter']),
        ('lightweight spring foundation picks', ['spring', 'foundation'])],
    5: [('summer-proof makeup tips', ['summer', 'makeup', 'sweatproof']),
        ('glowy summer skincare routine', ['summer', 'skincare', 'glow'])],
    6: [('beach-ready skincare tips', ['summer', 'beach', 'skincare']),
        ('waterproof makeup essentials', ['waterproof', 'makeup', 'summer'])],
    7: [('heat-proof makeup that lasts', ['summer', 'makeup', 'heatproof']),
        ('summer glow skincare routine', ['summer', 'glow', 'skincare'])],
    8: [('back to school makeup essentials', ['back to school', 'makeup']),
        ('end of summer skincare reset', ['summer', 'skincare', 'reset'])],
    9: [('fall makeup trends to try', ['fall', 'makeup', 'trends']),
        ('transitioning skincare for fall', ['fall', 'skincare'])],
    10: [('Halloween makeup ideas', ['halloween', 'makeup', 'costume']),
         ('fall skincare for dry weather', ['fall', 'skincare', 'dry'])],
    11: [('holiday party makeup looks', ['holiday', 'party', 'makeup']),
         ('Black Friday beauty deals worth it', ['black friday', 'deals', 'beauty'])],
    12: [('holiday glam makeup tutorial', ['holiday', 'glam', 'makeup']),
         ('winter skincare for cold weather', ['winter', 'skincare', 'cold'])],
}

DEFAULT_INSTAGRAM_CURATED = [
    ('Instagram Reels makeup transitions', ['reels', 'makeup', 'transition']),
    ('aesthetic skincare shelfie organization', ['shelfie', 'skincare', 'aesthetic']),
    ('soft glam makeup for photos', ['soft glam', 'photogenic', 'makeup']),
    ('get ready with me Instagram edition', ['grwm', 'instagram', 'tutorial']),
    ('makeup flatlay photography tips', ['flatlay', 'photography', 'makeup']),
    ('Instagram vs reality makeup looks', ['instagram', 'reality', 'makeup']),
    ('celebrity makeup artist secrets', ['celebrity', 'makeup', 'secrets']),
    ('model off-duty skincare routine', ['model', 'skincare', 'routine']),
    ('red carpet makeup breakdown', ['red carpet', 'makeup', 'celebrity']),
]


Trend = Tuple[str, List[str]]


def _parse_trends(entries: Any) -> List[Trend]:
    """Accept ``{topic, tags}`` mappings, ``[topic, tags]`` pairs or bare topics."""
    trends: List[Trend] = []
    for entry in entries or []:
        if isinstance(entry, dict):
            topic, tags = entry.get('topic'), entry.get('tags')
        elif isinstance(entry, (list, tuple)) and entry:
            topic, tags = entry[0], entry[1] if len(entry) > 1 else None
        else:
            topic, tags = entry, None
        if not topic or not str(topic).strip():
            continue
        trends.append((str(topic).strip(), [str(t).lower() for t in tags or []]))
    return trends


def _parse_seasonal(data: Any) -> Dict[int, List[Trend]]:
    seasonal: Dict[int, List[Trend]] = {}
    for month, entries in (data or {}).items():
        month = int(month)
        if not 1 <= month <= 12:
            raise ValueError(f"Seasonal month out of range: {month}")
        seasonal[month] = _parse_trends(entries)
    return seasonal


@dataclass
class TrendsConfig:
    """Keyword set, word lists and curated formats for the trender."""
    keywords: List[str] = field(default_factory=lambda: list(DEFAULT_KEYWORDS))
    preserve_words: List[str] = field(default_factory=lambda: list(DEFAULT_PRESERVE_WORDS))
    dedup_preserve_short_words: bool = False
    duplicate_threshold: float = 0.7
    tiktok_curated: List[Trend] = field(default_factory=lambda: list(DEFAULT_TIKTOK_CURATED))
    tiktok_seasonal: Dict[int, List[Trend]] = field(
        default_factory=lambda: {month: list(themes) for month, themes in DEFAULT_TIKTOK_SEASONAL.items()}
    )
    instagram_curated: List[Trend] = field(default_factory=lambda: list(DEFAULT_INSTAGRAM_CURATED))

    @property
    def dedup_preserve_words(self) -> List[str]:
        """Allow-list handed to the deduplicator, empty unless enabled."""
        return self.preserve_words if self.dedup_preserve_short_words else []

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrendsConfig":
        defaults = cls()
        curated = data.get('curated') or {}
        return cls(
            keywords=[str(k).lower() for k in data.get('keywords') or defaults.keywords],
            preserve_words=[str(w).lower() for w in data.get('preserve_words') or defaults.preserve_words],
            dedup_preserve_short_words=bool(data.get('dedup_preserve_short_words', False)),
            duplicate_threshold=float(data.get('duplicate_threshold', defaults.duplicate_threshold)),
            tiktok_curated=_parse_trends(curated.get('tiktok')) or defaults.tiktok_curated,
            tiktok_seasonal=_parse_seasonal(data.get('seasonal')) or defaults.tiktok_seasonal,
            instagram_curated=_parse_trends(curated.get('instagram')) or defaults.instagram_curated,
        )

    @classmethod
    def load_from_yaml(cls, yaml_path: str) -> "TrendsConfig":
        """Load config from YAML, falling back to built-in defaults."""
        path = Path(yaml_path)
        if not path.exists():
            logger.info(f"Trends config not found at {path}, using defaults")
            return cls()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error loading trends config from {path}: {e}")
            return cls()

        return cls.from_dict(data)
