"""
CSS selectors for the site's "my listings" surface.

Kept in one place: these are the first thing to break when the layout drifts.
"""

PROFILE_HEADER = "[data-testid='ownprofile-header'], .ownprofile-header"
PROFILE_HEADER_WAIT = "[data-testid='ownprofile-header'] h2, h2.text-title2"
POSTED_ADS = "[data-testid='posted-ads']"

SECTION_HEADINGS = "h1, h2, h3"
AD_CARD = "[data-testid='ad-card']"
AD_LIST_WAIT = "[data-testid='ad-card'], #my-manageitems-adlist li"
CARD_ID_ATTRS = ("data-adid", "data-ad-id")

TITLE_ELEMENTS = (
    "[data-testid*='ad-title']",
    "[data-qa*='ad-title']",
    ".ad-title",
    "h3 a",
    "h3",
    "h2",
)
PRICE_ELEMENTS = (
    "ul.list li.text-title3",
    "[data-testid*='ad-price']",
    "[data-qa*='ad-price']",
    ".ad-price",
    ".price",
)
TEXT_FRAGMENTS = ("span", "div", "li")

IMAGE_PREFERRED = ("img[data-testid*='ad-image']", "img[alt]")
IMAGE_BACKGROUND = ("[style*='background-image']", "[data-bg]", "[data-background]")

ROW_CONTAINERS = ("article", "li", "div")
CONTROLS = "button, [role='button'], a"
TABS = "button, a, [role='tab']"

DIALOGS = (
    "[role='dialog']",
    "[data-testid*='modal']",
    "[data-qa*='modal']",
    ".modal",
    ".dialog",
    ".overlay",
)
DIALOG_ANY = ", ".join(DIALOGS)
DIALOG_BUTTONS = "button, [role='button'], input[type='submit']"
REASON_OPTIONS = "input[type='radio'], input[type='checkbox']"
