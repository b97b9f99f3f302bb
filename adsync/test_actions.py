"""
Row lookup, action triggering, delete confirmation and outcome verification
against a fake page driver.
"""
import asyncio

from adsync.actions import (
    ConfirmState,
    DeleteConfirmation,
    Verification,
    outcome_result,
    row_confirms,
    run_action,
)
from adsync.conftest import FakeDriver, LISTINGS_HTML, label_contains
from adsync.extractor import make_soup
from adsync.locator import control_text, css_path, find_row
from adsync.models import ActionType

SOFA = "2745123456"
BIKE = "2745999000"
BIKE_HREF = "https://www.kleinanzeigen.de/s-anzeige/fahrrad-28-zoll/2745999000-217-1234"

DIALOG_HTML = (
    '<div role="dialog"><p>Warum möchtest du die Anzeige löschen?</p>'
    '<label><input type="radio" name="reason" value="sold"> Verkauft</label>'
    '<button type="button">Weiter</button></div>'
)


def in_card(ad_id: str, label: str):
    def predicate(el):
        return el.find_parent(attrs={"data-adid": ad_id}) is not None and label.lower() in control_text(el).lower()
    return predicate


def in_dialog(label: str):
    def predicate(el):
        return el.find_parent(attrs={"role": "dialog"}) is not None and label.lower() in control_text(el).lower()
    return predicate


def card(drv: FakeDriver, ad_id: str):
    return drv.soup.find(attrs={"data-adid": ad_id})


def run(drv, action, ad_id, config, **kwargs):
    return asyncio.run(run_action(drv, action, ad_id, config=config, **kwargs))


# --- lookup -----------------------------------------------------------------

def test_css_path_addresses_the_same_element():
    soup = make_soup(LISTINGS_HTML)
    button = soup.find("button", string="Reservieren")
    assert soup.select_one(css_path(button)) is button


def test_find_row_by_id_attribute():
    row = find_row(make_soup(LISTINGS_HTML), BIKE)
    assert row.get("data-adid") == BIKE


def test_find_row_by_href_pattern_without_id_attribute():
    soup = make_soup(LISTINGS_HTML.replace(f'data-adid="{BIKE}"', ""))
    row = find_row(soup, BIKE)
    assert row.get("data-testid") == "ad-card"
    assert "Fahrrad" in row.get_text()


def test_find_row_by_href_hint():
    row = find_row(make_soup(LISTINGS_HTML), "999", href_hint=BIKE_HREF)
    assert row.get("data-adid") == BIKE


def test_find_row_by_title_hint_picks_the_row_not_the_title():
    row = find_row(make_soup(LISTINGS_HTML), "", title_hint="fahrrad 28 zoll")
    assert row.get("data-adid") == BIKE


def test_find_row_none():
    assert find_row(make_soup(LISTINGS_HTML), "111", href_hint="/s-anzeige/nope/111-1-1", title_hint="Klavier") is None


# --- reserve / activate ------------------------------------------------------

def test_reserve_confirmed(fast_config):
    def reserve(drv, el):
        el.string = "Aktivieren"
        card(drv, BIKE).find("div", class_="stats").append(drv.fragment("<span>Reserviert</span>"))

    drv = FakeDriver().on_click(in_card(BIKE, "Reservieren"), reserve)
    result = run(drv, ActionType.RESERVE, BIKE, fast_config)
    assert result.to_dict() == {"success": True, "confirmed": True, "removed": False, "message": "OK"}
    assert drv.clicks[0] == "Alle"


def test_reserve_without_visible_change_is_pending(fast_config):
    drv = FakeDriver()
    result = run(drv, ActionType.RESERVE, BIKE, fast_config)
    assert result.success is True
    assert result.confirmed is False
    assert result.removed is False
    assert result.message == "ACTION_PENDING"
    assert "Reservieren" in drv.clicks


def test_reserve_button_missing(fast_config):
    result = run(FakeDriver(), ActionType.RESERVE, SOFA, fast_config)
    assert result.to_dict() == {"success": False, "error": "RESERVE_BUTTON_NOT_FOUND"}


def test_hidden_button_is_not_clicked(fast_config):
    drv = FakeDriver()
    drv.soup.find("button", string="Reservieren")["style"] = "display: none"
    result = run(drv, ActionType.RESERVE, BIKE, fast_config)
    assert result.error == "RESERVE_BUTTON_NOT_FOUND"
    assert "Reservieren" not in drv.clicks


def test_activate_confirmed_by_reserve_button(fast_config):
    def activate(drv, el):
        el.string = "Reservieren"
        card(drv, SOFA).h3.a.string = "Leather Sofa"

    drv = FakeDriver().on_click(in_card(SOFA, "Aktivieren"), activate)
    result = run(drv, ActionType.ACTIVATE, SOFA, fast_config)
    assert result.success is True
    assert result.confirmed is True


def test_deactivate_button_is_not_an_activate_button(fast_config):
    result = run(FakeDriver(), ActionType.ACTIVATE, BIKE, fast_config)
    assert result.error == "ACTIVATE_BUTTON_NOT_FOUND"


def test_ad_not_found(fast_config):
    result = run(FakeDriver(), ActionType.RESERVE, "123", fast_config)
    assert result.to_dict() == {"success": False, "error": "AD_NOT_FOUND"}


def test_all_tab_reveals_reserved_rows(fast_config):
    html = LISTINGS_HTML.replace(f'data-adid="{BIKE}"', f'data-adid="{BIKE}" hidden')

    def show_all(drv, el):
        del card(drv, BIKE)["hidden"]

    drv = FakeDriver(html).on_click(label_contains("Alle"), show_all)
    result = run(drv, ActionType.RESERVE, BIKE, fast_config)
    assert result.success is True
    assert drv.clicks[:2] == ["Alle", "Reservieren"]


def test_row_gone_after_reserve_with_listing_surface_present(fast_config):
    drv = FakeDriver().on_click(in_card(BIKE, "Reservieren"), lambda d, el: card(d, BIKE).decompose())
    result = run(drv, ActionType.RESERVE, BIKE, fast_config)
    assert result.to_dict() == {
        "success": True, "confirmed": False, "removed": True, "message": "ACTION_PENDING",
    }


def test_row_gone_after_reserve_with_unresolved_surface(fast_config):
    drv = FakeDriver().on_click(
        in_card(BIKE, "Reservieren"),
        lambda d, el: d.replace_html("<html><body><p>Ein Fehler ist aufgetreten</p></body></html>"),
    )
    result = run(drv, ActionType.RESERVE, BIKE, fast_config)
    assert result.success is True
    assert result.confirmed is False
    assert result.removed is False
    assert result.message == "ROW_MISSING_SURFACE_UNRESOLVED"


# --- delete -------------------------------------------------------------------

def _two_step_delete(drv: FakeDriver) -> FakeDriver:
    def open_dialog(d, el):
        d.soup.body.append(d.fragment(DIALOG_HTML))

    def next_step(d, el):
        dialog = el.find_parent(attrs={"role": "dialog"})
        dialog.clear()
        dialog.append(d.fragment('<button type="button">Anzeige endgültig löschen</button>'))

    def finish(d, el):
        el.find_parent(attrs={"role": "dialog"}).decompose()
        card(d, BIKE).decompose()

    return (
        drv.on_click(in_card(BIKE, "Löschen"), open_dialog)
        .on_click(in_dialog("Weiter"), next_step)
        .on_click(in_dialog("endgültig löschen"), finish)
    )


def test_delete_two_step_dialog(fast_config):
    drv = _two_step_delete(FakeDriver())
    result = run(drv, ActionType.DELETE, BIKE, fast_config)
    assert result.to_dict() == {"success": True, "confirmed": True, "removed": True, "message": "OK"}
    assert drv.clicks == ["Alle", "Löschen", "sold", "Weiter", "Anzeige endgültig löschen"]


def test_delete_confirmation_state_machine(fast_config):
    drv = _two_step_delete(FakeDriver())
    drv.soup.body.append(drv.fragment(DIALOG_HTML))
    confirmation = DeleteConfirmation(drv, fast_config)
    state = asyncio.run(confirmation.run())
    assert state is ConfirmState.STEP2_CONFIRMED
    confirmation.mark_verified()
    assert confirmation.history == [
        ConfirmState.TRIGGERED,
        ConfirmState.AWAITING_DIALOG,
        ConfirmState.STEP1_CONFIRMED,
        ConfirmState.STEP2_CONFIRMED,
        ConfirmState.VERIFIED,
    ]


def test_delete_without_dialog_row_disappears(fast_config):
    drv = FakeDriver().on_click(in_card(BIKE, "Löschen"), lambda d, el: card(d, BIKE).decompose())
    result = run(drv, ActionType.DELETE, BIKE, fast_config)
    assert result.success is True
    assert result.removed is True


def test_delete_via_confirmation_page(fast_config):
    confirm_page = (
        "<html><body><form><p>Anzeige wirklich löschen?</p>"
        '<button type="submit">Löschen bestätigen</button></form></body></html>'
    )
    remaining = LISTINGS_HTML.replace(f'data-adid="{BIKE}"', 'data-adid="1" hidden').replace(
        "fahrrad-28-zoll/2745999000", "fahrrad/1"
    )

    drv = FakeDriver()
    drv.on_click(in_card(BIKE, "Löschen"), lambda d, el: d.navigate("https://www.kleinanzeigen.de/m-anzeige-loeschen.html", confirm_page))
    drv.on_click(label_contains("bestätigen"), lambda d, el: d.navigate("https://www.kleinanzeigen.de/m-meine-anzeigen.html", remaining))

    result = run(drv, ActionType.DELETE, BIKE, fast_config)
    assert result.success is True
    assert result.removed is True
    assert "Löschen bestätigen" in drv.clicks


def test_delete_not_confirmed_when_row_stays(fast_config):
    result = run(FakeDriver(), ActionType.DELETE, BIKE, fast_config)
    assert result.to_dict() == {
        "success": False,
        "confirmed": False,
        "removed": False,
        "error": "ACTION_NOT_CONFIRMED",
        "message": "ACTION_NOT_CONFIRMED",
    }


def test_delete_confirmed_by_deleted_marker(fast_config):
    drv = FakeDriver().on_click(
        in_card(BIKE, "Löschen"),
        lambda d, el: card(d, BIKE).find("div", class_="stats").append(d.fragment("<span>Gelöscht</span>")),
    )
    result = run(drv, ActionType.DELETE, BIKE, fast_config)
    assert result.success is True
    assert result.confirmed is True
    assert result.removed is False


# --- verification mapping ----------------------------------------------------

def test_row_confirms_activate_needs_whole_word_status():
    row = make_soup(
        '<li><span>Aktiv</span><button>Bearbeiten</button></li>'
    ).li
    assert row_confirms(row, ActionType.ACTIVATE)
    row = make_soup('<li><span>Inaktiv</span><button>Bearbeiten</button></li>').li
    assert not row_confirms(row, ActionType.ACTIVATE)


def test_outcome_mapping_for_missing_rows():
    gone = Verification(row_found=False, surface_resolves=True)
    assert outcome_result(ActionType.DELETE, gone).success is True
    assert outcome_result(ActionType.DELETE, gone).removed is True
    assert outcome_result(ActionType.ACTIVATE, gone).message == "ACTION_PENDING"
    broken = Verification(row_found=False, surface_resolves=False)
    assert outcome_result(ActionType.ACTIVATE, broken).message == "ROW_MISSING_SURFACE_UNRESOLVED"
