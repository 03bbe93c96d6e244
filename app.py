"""
Favor Tracker - Main Streamlit Application

Entry point for the character favor and quest tracker.
Orchestrates login, character selection, favor/experience views, and
persistence of completions and preferences.
"""

import logging

import streamlit as st

from favortracker.analytics import send_completion_metric, send_count_metric, send_import_metric
from favortracker.catalog import QuestCatalog, load_quest_catalog
from favortracker.characters import (
    merge_ui_preferences,
    sort_characters,
    validate_character_name,
    validate_favor_details,
    validate_level,
)
from favortracker.completion_import import parse_completion_csv
from favortracker.database import (
    PersistenceError,
    RateLimitError,
    batch_update_quest_completions,
    create_character,
    delete_character,
    get_characters,
    get_owned_packs,
    get_quest_completions,
    reset_quest_completions,
    save_quest_completion,
    update_character_level,
    update_character_name,
    update_favor_details,
    update_owned_packs,
    update_ui_preferences,
)
from favortracker.experience import experience_guide_rows
from favortracker.favor import apply_completion_change, earned_favor, max_favor, remaining_favor_by_location
from favortracker.filters import EXP_SORT_FIELDS, ScopeFilters, filter_quests, sort_quests
from favortracker.preferences import DebouncedSaver
from favortracker.ui_components import (
    completion_widget_key,
    render_account_packs,
    render_character_header,
    render_character_list,
    render_character_picker,
    render_character_settings,
    render_exp_guide,
    render_favor_tracker,
    render_preference_controls,
    render_quest_finder,
    render_sidebar_login,
    render_table_controls,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Page configuration
st.set_page_config(
    page_title="Favor Tracker",
    page_icon="📜",
    layout="wide"
)

DB_ERROR_MESSAGE = "Unable to connect to database. Please try again."
BUSY_MESSAGE = "System is busy. Please wait a moment and try again."


def initialize_session_state():
    """Initialize Streamlit session state with default values.

    Session state fields:
    - characters: list - Characters owned by the logged-in user
    - character_id: str | None - Character currently open (None = dashboard)
    - completions: dict - Completion flags of the open character, by quest id
    - ui_preferences: dict - Preferences of the open character
    - owned_packs: list | None - Account's adventure packs (None = not loaded)
    - preference_saver: DebouncedSaver | None - Autosave for the open character
    """
    defaults = {
        "characters": None,
        "character_id": None,
        "completions": {},
        "ui_preferences": merge_ui_preferences(None),
        "owned_packs": None,
        "preference_saver": None,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def get_worksheets():
    """Load Google Sheets worksheets using credentials from Streamlit secrets.

    Returns:
        Dict with 'characters', 'completions' and 'accounts' gspread worksheets

    Raises:
        Exception: If secrets are not configured or connection fails
    """
    try:
        import gspread
        from google.oauth2.service_account import Credentials

        credentials_dict = st.secrets["gcp_service_account"]

        scopes = [
            "https://www.googleapis.com/auth/spreadsheets",
            "https://www.googleapis.com/auth/drive"
        ]
        credentials = Credentials.from_service_account_info(
            credentials_dict,
            scopes=scopes
        )

        client = gspread.authorize(credentials)
        spreadsheet = client.open_by_key(st.secrets["google_sheets_id"])

        return {
            "characters": spreadsheet.worksheet("Characters"),
            "completions": spreadsheet.worksheet("Completions"),
            "accounts": spreadsheet.worksheet("Accounts"),
        }

    except Exception as e:
        logger.error(f"Failed to connect to Google Sheets: {e}")
        raise


def get_datadog_api_key():
    """Load the optional Datadog API key from Streamlit secrets."""
    return st.secrets.get("datadog_api_key", "")


@st.cache_resource
def get_catalog() -> QuestCatalog:
    """Load the static quest catalog once per process."""
    catalog = load_quest_catalog()
    logger.info(f"Loaded quest catalog with {len(catalog)} quests")
    return catalog


def get_current_user_id():
    """Identity provider subject of the logged-in user, or None."""
    if not st.user.is_logged_in:
        return None
    return st.user.get("sub") or st.user.get("email")


def clear_completion_widgets():
    for key in list(st.session_state.keys()):
        if key.startswith("tier_"):
            del st.session_state[key]


def open_character(user_id: str, character_id: str | None, worksheets):
    """Load the selected character's completions and preferences into session state."""
    saver = st.session_state.preference_saver
    if saver is not None:
        saver.flush()
        report_preference_save_failure(saver)

    clear_completion_widgets()
    st.session_state.character_id = character_id
    st.session_state.preference_saver = None
    st.session_state.completions = {}

    if character_id is None:
        return

    character = find_open_character()
    if character is None:
        st.session_state.character_id = None
        return

    st.session_state.completions = get_quest_completions(user_id, character_id, worksheets["completions"])
    st.session_state.ui_preferences = character["ui_preferences"]
    st.session_state.preference_saver = DebouncedSaver(
        lambda prefs: update_ui_preferences(user_id, character_id, prefs, worksheets["characters"])
    )


def report_preference_save_failure(saver):
    """Warn once when the last preference autosave did not reach the sheet."""
    if saver is not None and saver.last_save_failed:
        saver.clear_failure()
        st.warning(f"Could not save display preferences. {DB_ERROR_MESSAGE}")


def find_open_character():
    for character in st.session_state.characters or []:
        if character["id"] == st.session_state.character_id:
            return character
    return None


def handle_completion_change(user_id: str, worksheets, datadog_api_key):
    """Apply a ticked/unticked difficulty with cascade and persist that quest only.

    Runs before the favor tracker renders so cascaded checkboxes can be updated.
    Rolls back the local state if the write fails.
    """
    if "completion_submission" not in st.session_state:
        return

    submission = st.session_state["completion_submission"]
    del st.session_state["completion_submission"]

    quest = get_catalog().get(submission["quest_id"])
    character_id = st.session_state.character_id
    if quest is None or character_id is None:
        return

    original_status = st.session_state.completions.get(quest.id)
    new_status = apply_completion_change(
        original_status,
        submission["difficulty"],
        submission["checked"],
        quest.difficulties,
    )

    def show_status(status):
        for difficulty in quest.difficulties:
            st.session_state[completion_widget_key(quest.id, difficulty)] = bool((status or {}).get(difficulty))

    st.session_state.completions = {**st.session_state.completions, quest.id: new_status}
    show_status(new_status)

    try:
        if not save_quest_completion(user_id, character_id, quest.id, new_status, worksheets["completions"]):
            raise PersistenceError("Database write failed")
        send_completion_metric(submission["difficulty"], submission["checked"], datadog_api_key)

    except (PersistenceError, RateLimitError) as e:
        completions = dict(st.session_state.completions)
        if original_status is None:
            completions.pop(quest.id, None)
        else:
            completions[quest.id] = original_status
        st.session_state.completions = completions
        show_status(original_status)

        st.error(BUSY_MESSAGE if isinstance(e, RateLimitError) else DB_ERROR_MESSAGE)
        logger.error(f"Completion save failed for character {character_id}, quest {quest.id}: {e}")


def handle_reset_completions(user_id: str, worksheets):
    """Clear every completion of the open character."""
    if not st.session_state.pop("reset_completions_submission", False):
        return

    character_id = st.session_state.character_id
    if reset_quest_completions(user_id, character_id, worksheets["completions"]):
        st.session_state.completions = {}
        clear_completion_widgets()
        st.success("All quest completions have been reset.")
        st.rerun()
    else:
        st.error(DB_ERROR_MESSAGE)


def handle_completion_import(user_id: str, worksheets, datadog_api_key):
    """Import completions from an uploaded CSV."""
    if "completion_csv_submission" not in st.session_state:
        return

    text = st.session_state.pop("completion_csv_submission")
    updates, errors = parse_completion_csv(text, get_catalog())

    if errors:
        st.warning(f"Found {len(errors)} issues: " + "; ".join(errors[:3]))
        logger.warning(f"CSV import issues: {errors}")

    if not updates:
        if not errors:
            st.info("CSV parsed, but no valid quest completion updates found.")
        return

    character_id = st.session_state.character_id
    if batch_update_quest_completions(user_id, character_id, updates, worksheets["completions"]):
        completions = dict(st.session_state.completions)
        for update in updates:
            completions[update["quest_id"]] = update["status"]
        st.session_state.completions = completions
        clear_completion_widgets()
        send_import_metric(len(updates), datadog_api_key)
        st.success(f"{len(updates)} quest completions imported successfully.")
        st.rerun()
    else:
        st.error(DB_ERROR_MESSAGE)


def handle_preference_change(preferences: dict):
    """Queue a debounced save when the user changed a toggle or weight."""
    preferences = merge_ui_preferences(preferences)
    if preferences == st.session_state.ui_preferences:
        return

    st.session_state.ui_preferences = preferences
    character = find_open_character()
    if character is not None:
        character["ui_preferences"] = preferences

    saver = st.session_state.preference_saver
    if saver is not None:
        saver.schedule(preferences)


def handle_create_character(user_id: str, worksheets, datadog_api_key):
    """Validate and create a character from the dashboard form."""
    if "create_character_submission" not in st.session_state:
        return

    submission = st.session_state.pop("create_character_submission")
    is_valid, error_message = validate_character_name(submission["name"])
    if not is_valid:
        st.error(error_message)
        return
    level_ok, level_error, level = validate_level(submission["level"])
    if not level_ok:
        st.error(level_error)
        return

    try:
        character = create_character(user_id, submission["name"], level, worksheets["characters"])
    except (PersistenceError, RateLimitError) as e:
        st.error(BUSY_MESSAGE if isinstance(e, RateLimitError) else DB_ERROR_MESSAGE)
        logger.error(f"Character creation failed for user {user_id}: {e}")
        return

    st.session_state.characters = (st.session_state.characters or []) + [character]
    send_count_metric("character_created", datadog_api_key)
    st.success(f"{character['name']} created successfully!")
    st.rerun()


def handle_level_update(user_id: str, worksheets):
    if "level_submission" not in st.session_state:
        return

    is_valid, error_message, level = validate_level(st.session_state.pop("level_submission"))
    if not is_valid:
        st.error(error_message)
        return

    character = find_open_character()
    if update_character_level(user_id, character["id"], level, worksheets["characters"]):
        character["level"] = level
        st.success(f"Level updated to {level}.")
        st.rerun()
    else:
        st.error(DB_ERROR_MESSAGE)


def handle_rename(user_id: str, worksheets):
    if "rename_submission" not in st.session_state:
        return

    name = st.session_state.pop("rename_submission")
    is_valid, error_message = validate_character_name(name)
    if not is_valid:
        st.error(error_message)
        return

    character = find_open_character()
    if update_character_name(user_id, character["id"], name, worksheets["characters"]):
        character["name"] = name.strip()
        st.success(f'Name updated to "{name.strip()}" successfully!')
        st.rerun()
    else:
        st.error(DB_ERROR_MESSAGE)


def handle_favor_details_update(user_id: str, worksheets):
    if "favor_details_submission" not in st.session_state:
        return

    favor_details = st.session_state.pop("favor_details_submission")
    is_valid, error_message = validate_favor_details(favor_details)
    if not is_valid:
        st.error(error_message)
        return

    character = find_open_character()
    if update_favor_details(user_id, character["id"], favor_details, worksheets["characters"]):
        character["favor_details"] = favor_details
        st.success("Faction favor saved.")
        st.rerun()
    else:
        st.error(DB_ERROR_MESSAGE)


def handle_delete_character(user_id: str, worksheets):
    if "delete_character_submission" not in st.session_state:
        return

    character_id = st.session_state.pop("delete_character_submission")
    try:
        deleted = delete_character(user_id, character_id, worksheets["characters"], worksheets["completions"])
    except (PersistenceError, RateLimitError) as e:
        st.error(BUSY_MESSAGE if isinstance(e, RateLimitError) else DB_ERROR_MESSAGE)
        logger.error(f"Character deletion failed for {character_id}: {e}")
        return

    if not deleted:
        st.error("Character not found.")
        return

    saver = st.session_state.preference_saver
    if saver is not None:
        saver.cancel()
    st.session_state.characters = [
        c for c in st.session_state.characters if c["id"] != character_id
    ]
    st.session_state.pop("character_picker", None)
    open_character(user_id, None, worksheets)
    st.rerun()


def handle_owned_packs_update(user_id: str, worksheets):
    if "owned_packs_submission" not in st.session_state:
        return

    packs = st.session_state.pop("owned_packs_submission")
    if update_owned_packs(user_id, packs, worksheets["accounts"]):
        st.session_state.owned_packs = packs
        st.success("Adventure packs saved.")
        st.rerun()
    else:
        st.error(DB_ERROR_MESSAGE)


def render_character_view(user_id: str, character: dict, worksheets, datadog_api_key):
    """Character detail page: favor tracker, quest finder, experience guide, settings."""
    catalog = get_catalog()

    handle_completion_change(user_id, worksheets, datadog_api_key)
    report_preference_save_failure(st.session_state.preference_saver)

    render_character_header(character)
    handle_level_update(user_id, worksheets)

    preferences = render_preference_controls(st.session_state.ui_preferences)
    handle_preference_change(preferences)
    preferences = st.session_state.ui_preferences
    weights = preferences["duration_weights"]
    owned_packs = frozenset(st.session_state.owned_packs or [])
    completions = st.session_state.completions

    tabs = st.tabs(["📈 Favor Tracker", "🔎 Quest Finder", "✨ Experience Guide", "🛠️ Settings"])

    with tabs[0]:
        search, sort_field, descending = render_table_controls("favor")
        filters = ScopeFilters(
            owned_packs=owned_packs,
            character_level=character["level"],
            apply_level_ceiling=False,
            show_raids=preferences["show_raids"],
            regional_filter=preferences["on_cormyr_filter"],
            search_term=search,
            show_completed=preferences["show_completed_quests"],
            completions=completions,
            weights=weights,
        )
        in_scope = filter_quests(catalog, filters)
        remaining = remaining_favor_by_location(in_scope, completions, weights)
        rows = [
            {
                "quest": quest,
                "earned": earned_favor(quest, completions.get(quest.id), weights),
                "max": max_favor(quest, weights),
            }
            for quest in sort_quests(in_scope, sort_field, descending, remaining)
        ]
        render_favor_tracker(rows, remaining, completions)
        handle_reset_completions(user_id, worksheets)
        handle_completion_import(user_id, worksheets, datadog_api_key)

    with tabs[1]:
        search, sort_field, descending = render_table_controls(
            "finder", fields=("level", "name", "pack")
        )
        filters = ScopeFilters(
            owned_packs=owned_packs,
            character_level=character["level"],
            show_raids=preferences["show_raids"],
            regional_filter=preferences["on_cormyr_filter"],
            search_term=search,
        )
        render_quest_finder(sort_quests(filter_quests(catalog, filters), sort_field, descending), character["level"])

    with tabs[2]:
        search, sort_field, descending = render_table_controls("exp", fields=EXP_SORT_FIELDS)
        filters = ScopeFilters(
            apply_pack_ownership=False,
            character_level=character["level"],
            show_raids=preferences["show_raids"],
            regional_filter=preferences["on_cormyr_filter"],
            search_term=search,
        )
        rows = experience_guide_rows(
            filter_quests(catalog, filters), character["level"], sort_field, descending
        )
        render_exp_guide(rows)

    with tabs[3]:
        favor_areas = sorted({quest.favor_area for quest in catalog if quest.favor_area})
        render_character_settings(character, favor_areas)
        handle_rename(user_id, worksheets)
        handle_favor_details_update(user_id, worksheets)
        handle_delete_character(user_id, worksheets)


def main():
    """Main application entry point.

    Orchestrates:
    - Session state initialization
    - Login gate (delegated to the identity provider)
    - Dashboard / character navigation in the sidebar
    - Submission handling for every form
    """
    initialize_session_state()

    st.title("📜 Favor Tracker")

    user_id = get_current_user_id()
    if user_id is None:
        render_sidebar_login()
        st.info("👈 Please log in using the sidebar to track your characters!")
        return

    try:
        worksheets = get_worksheets()
        datadog_api_key = get_datadog_api_key()
    except Exception as e:
        st.error("Configuration error. Please contact the administrator.")
        logger.error(f"Failed to load configuration: {e}")
        return

    try:
        if st.session_state.characters is None:
            st.session_state.characters = get_characters(user_id, worksheets["characters"])
        if st.session_state.owned_packs is None:
            st.session_state.owned_packs = get_owned_packs(user_id, worksheets["accounts"])
    except (PersistenceError, RateLimitError) as e:
        st.error(BUSY_MESSAGE if isinstance(e, RateLimitError) else DB_ERROR_MESSAGE)
        logger.error(f"Failed to load account data for user {user_id}: {e}")
        return

    st.sidebar.success(f"Logged in as: **{st.user.get('name') or st.user.get('email') or user_id}**")
    render_character_picker(st.session_state.characters, st.session_state.character_id)

    selected_id = st.session_state.get("character_picker")
    if selected_id != st.session_state.character_id:
        try:
            open_character(user_id, selected_id, worksheets)
        except (PersistenceError, RateLimitError) as e:
            st.error(BUSY_MESSAGE if isinstance(e, RateLimitError) else DB_ERROR_MESSAGE)
            logger.error(f"Failed to open character {selected_id}: {e}")
            st.session_state.character_id = None

    if st.sidebar.button("Logout"):
        saver = st.session_state.preference_saver
        if saver is not None:
            saver.flush()
        for key in list(st.session_state.keys()):
            del st.session_state[key]
        st.logout()

    character = find_open_character()
    if character is None:
        tabs = st.tabs(["🏰 Dashboard", "🎒 Account"])
        with tabs[0]:
            characters = sort_characters(
                st.session_state.characters,
                st.session_state.get("character_sort_field", "created_at"),
                st.session_state.get("character_sort_descending", True),
            )
            render_character_list(characters)
            handle_create_character(user_id, worksheets, datadog_api_key)
        with tabs[1]:
            render_account_packs(st.session_state.owned_packs)
            handle_owned_packs_update(user_id, worksheets)
    else:
        render_character_view(user_id, character, worksheets, datadog_api_key)


if __name__ == "__main__":
    main()
