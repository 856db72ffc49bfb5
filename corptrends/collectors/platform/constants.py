"""Listing URLs and selector chains for the platform collectors.

Selectors are ordered most specific first; the extraction helpers take the
first one that yields a value.
"""

# Qiita
QIITA_BASE_URL = "https://qiita.com"
QIITA_TRENDING_URL = "https://qiita.com"

QIITA_CONTAINER_SELECTORS = (
    "article",
    ".style-1uma8mh",
    ".style-1w7apwp",
    '[class*="ArticleCard"]',
    '[data-testid*="article"]',
    'div[class*="style-"]',
)
QIITA_TITLE_SELECTORS = (
    "h2 a",
    "h1 a",
    'a[href*="/items/"]',
    "h2",
    '[class*="title"]',
)
QIITA_URL_SELECTORS = ("h2 a", "h1 a", 'a[href*="/items/"]')
QIITA_LIKES_PRIORITY_SELECTORS = ('footer div[class*="style-"]', "footer span")
QIITA_LIKES_FALLBACK_SELECTORS = (
    '[aria-label*="LGTM"]',
    '[aria-label*="いいね"]',
    '[class*="like"]',
    '[class*="Like"]',
)
QIITA_AUTHOR_SELECTORS = ('a[href^="/@"]', 'a[href*="qiita.com/@"]')
QIITA_DATE_SELECTORS = ("time[datetime]", 'time[title]', '[class*="style-"][title]')
QIITA_ORGANIZATION_LINK_SELECTORS = (
    'a[href*="/organizations/"]:not([href*="/items/"])',
)
QIITA_ORGANIZATION_NAME_SELECTORS = (
    '[class*="organizationCard_name"]',
    *QIITA_ORGANIZATION_LINK_SELECTORS,
)

# Footer cells holding only a short digit run are the likes counter
QIITA_LIKES_MAX_DIGITS = 4

# Zenn
ZENN_BASE_URL = "https://zenn.dev"
ZENN_TRENDING_URL = "https://zenn.dev"

ZENN_CONTAINER_SELECTORS = (
    '[class*="ArticleList_item"]',
    '[class*="ArticleListItem"]',
    "article",
    '[data-testid="article-list-item"]',
    'a[href*="/articles/"]',
    ".View_container",
    'div[class*="View"]',
)
ZENN_TITLE_SELECTORS = (
    "h1",
    "h2",
    "h3",
    'a[href*="/articles/"]',
    ".View_title",
    '[class*="Title"]',
)
ZENN_URL_SELECTORS = ('a[href*="/articles/"]', "h1 a", "h2 a", "h3 a", "a")
ZENN_LIKES_SELECTORS = (
    '[data-testid="like-count"]',
    '[aria-label*="いいね"]',
    '[aria-label*="like"]',
    '[class*="Like"]',
    '[class*="like"]',
    "span[aria-label]",
    ".View_likeCount",
)
ZENN_AUTHOR_LINK_SELECTORS = ('a[href^="/@"]', 'a[href*="zenn.dev/@"]')
ZENN_AUTHOR_TEXT_SELECTORS = (
    '[class*="userName"]',
    '[class*="ArticleList_userName"]',
    '[data-testid="author-link"]',
    '[class*="Author"]',
    '[class*="author"]',
    ".View_author",
)
ZENN_AUTHOR_IMAGE_SELECTORS = ("img[alt]",)
ZENN_PUBLICATION_SELECTORS = ('a[href^="/p/"]', 'a[href*="zenn.dev/p/"]')
ZENN_DATE_SELECTORS = (
    "time[datetime]",
    "time",
    "[datetime]",
    '[data-testid="published-date"]',
    '[class*="Date"]',
    '[class*="date"]',
    ".View_date",
    '[class*="Time"]',
)

# Author text longer than this is treated as noise rather than a handle
ZENN_AUTHOR_MAX_LENGTH = 50

# Hatena Bookmark
HATENA_BASE_URL = "https://b.hatena.ne.jp"
HATENA_TRENDING_URL = "https://b.hatena.ne.jp/hotentry/it"
HATENA_POPULAR_URL = "https://b.hatena.ne.jp/hotentry/all"

HATENA_CONTAINER_SELECTORS = (".entrylist-contents", "li.entrylist-item", "article")
HATENA_TITLE_SELECTORS = (
    ".entrylist-contents-title a",
    "h3 a",
    ".entry-link",
)
HATENA_URL_SELECTORS = HATENA_TITLE_SELECTORS
HATENA_BOOKMARK_SELECTORS = (
    ".entrylist-contents-users a",
    ".entrylist-contents-users span",
    '[class*="users"]',
)
HATENA_DATE_SELECTORS = (".entrylist-contents-date", "time")
