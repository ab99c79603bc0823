"""
Prompt builders for article generation and content backfills.

Each builder returns the full user message for one LLM call. Prompts that
feed structured fields ask for JSON only; parsing tolerates fences anyway.
"""

from typing import Optional, Sequence

CATEGORIES = ("makeup", "skincare", "nails", "hair", "fashion", "lifestyle", "trending")

PERSONA = (
    "You write for Kyndall Ames, a Los Angeles beauty and lifestyle creator known "
    "for honest reviews, practical technique and a warm, friendly voice. She cares "
    "about what actually works, whether it costs five dollars or fifty."
)

JSON_ONLY = "Respond with valid JSON only. No markdown, no commentary."


def article_prompt(topic: str, platform: str, tags: Sequence[str]) -> str:
    tag_line = ", ".join(tags) if tags else "none"
    return f"""{PERSONA}

Write an article about a topic currently trending on {platform}.

TOPIC: {topic}
RELATED TAGS: {tag_line}

Goals:
- Treat the subject with real expertise: name techniques, ingredients and products.
- Make every section easy to scan and easy for AI answer engines to quote.
- Address the reader as "you". Do not write in the first person.
- State facts plainly and define any jargon the first time it appears.

Return this JSON object:
{{
  "title": "Specific, keyword-led headline of 50 to 60 characters",
  "excerpt": "Hook summary of 150 to 200 characters that includes the main keyword",
  "quickAnswer": "Two or three sentences that directly answer what the reader wants to know",
  "introduction": "Two or three paragraphs framing the topic and what the reader will learn",
  "content": "Four to six sections, each starting with a short header line, 800 to 1200 words in total. Separate paragraphs with blank lines.",
  "category": "one of: {', '.join(CATEGORIES)}",
  "seoTitle": "Search title of 50 to 60 characters containing the primary keyword",
  "seoDescription": "Meta description of 150 to 160 characters ending with a call to action",
  "keywords": ["primary keyword", "secondary keyword", "related term", "related term", "related term"]
}}

{JSON_ONLY}"""


def faq_prompt(topic: str, excerpt: str) -> str:
    return f"""Write 5 to 7 frequently asked questions for an article on "{topic}".

Article summary: {excerpt}

Use the questions people type into search engines and AI assistants
(what, how, why, when, can, should). Cover a definition, a how-to, a
comparison, a common problem and a product recommendation. Every answer
must make sense on its own, run 40 to 80 words and give a concrete detail
such as a timeframe, an ingredient or a technique.

Return a JSON array:
[
  {{"question": "...", "answer": "..."}}
]

{JSON_ONLY}"""


def takeaway_prompt(topic: str, excerpt: str) -> str:
    return f"""List 3 to 5 key takeaways for an article on "{topic}".

Article summary: {excerpt}

Each takeaway is one memorable, specific sentence under 100 characters,
ideally starting with a verb, plus one emoji that fits it.

Return a JSON array:
[
  {{"point": "...", "icon": "✨"}}
]

{JSON_ONLY}"""


def tips_prompt(topic: str) -> str:
    return f"""Share 3 or 4 expert tips about "{topic}" that feel like insider knowledge.

Each tip has a short title of 5 to 8 words, a 2 to 3 sentence description
explaining how and why it works, and an optional one-sentence pro tip for
advanced readers (use null when there is none).

Return a JSON array:
[
  {{"title": "...", "description": "...", "proTip": "... or null"}}
]

{JSON_ONLY}"""


def kyndalls_take_prompt(topic: str, platform: str) -> str:
    return f"""{PERSONA}

Write "Kyndall's Take", her personal opinion section for an article on "{topic}".
The trend was spotted on {platform}.

This is where her own voice shows: honest, conversational, specific about
what works and what is hype. Two or three paragraphs, 150 to 250 words.
Pick the mood that matches her verdict.

Return this JSON object:
{{
  "headline": "Three to five word header such as 'Real Talk'",
  "content": "The opinion text, paragraphs separated by blank lines",
  "mood": "love | recommend | mixed | caution | skip"
}}

{JSON_ONLY}"""


def geo_prompt(title: str, category: Optional[str], excerpt: Optional[str], summary: str,
               products: Sequence[str] = ()) -> str:
    return f"""{PERSONA}

An existing article is missing its answer-engine sections. Write them from the content below.

TITLE: {title}
CATEGORY: {category or 'lifestyle'}
EXCERPT: {excerpt or ''}
PRODUCTS MENTIONED: {', '.join(products) or 'None specified'}

CONTENT:
{summary}

Return this JSON object:
{{
  "quickAnswer": "Two or three sentences, 150 to 300 characters, answering what the article is about",
  "keyTakeaways": [
    {{"icon": "✨", "point": "Specific, actionable takeaway"}}
  ],
  "expertTips": [
    {{"title": "Short tip title", "description": "How and why, 2 to 3 sentences", "proTip": "Optional extra or null"}}
  ],
  "faqSection": [
    {{"question": "A question readers search for", "answer": "Self-contained answer of 40 to 80 words"}}
  ],
  "kyndallsTake": {{
    "headline": "Short catchy headline",
    "content": "Her honest opinion in 2 or 3 paragraphs",
    "mood": "love | recommend | mixed | caution | skip"
  }}
}}

Give 4 takeaways, 3 tips and 5 FAQs. Stay faithful to the content; do not invent products it never mentions.

{JSON_ONLY}"""


def references_prompt(title: str, quick_answer: Optional[str], summary: str) -> str:
    return f"""Find 3 to 5 authoritative sources that support the claims in this beauty article.

TITLE: {title}
QUICK ANSWER: {quick_answer or ''}

CONTENT:
{summary}

Prefer dermatology and medical bodies, peer-reviewed research, established
health publishers and brand ingredient pages. Only cite real pages you are
confident exist, with full https URLs. Skip any claim you cannot source.

Return this JSON object:
{{
  "references": [
    {{
      "title": "Page or paper title",
      "publisher": "Publication name",
      "url": "https://...",
      "note": "Which claim this supports",
      "supportedSections": ["Quick Answer", "Section name"]
    }}
  ]
}}

{JSON_ONLY}"""
