"""UI components module for the favor tracker.

This module provides Streamlit UI rendering functions for all application views:
- Sidebar login and character picker
- Character list and creation form
- Favor tracker with per-difficulty completion checkboxes
- Quest finder and experience guide tables
- Character settings and owned adventure packs

Render functions never write to the database. Form submissions and checkbox
changes are stored in session state for processing by the main app.
"""

import streamlit as st

from favortracker.catalog import ADVENTURE_PACKS, DIFFICULTIES, DURATION_TYPES
from favortracker.characters import MAX_LEVEL, MIN_LEVEL, parse_duration_weight_input
from favortracker.filters import SORT_FIELDS

DIFFICULTY_LABELS = {
    "casual": "Solo",
    "normal": "Normal",
    "hard": "Hard",
    "elite": "Elite",
}

SORT_FIELD_LABELS = {
    "name": "Name",
    "level": "Level",
    "pack": "Pack",
    "location": "Location",
    "quest_giver": "Quest Giver",
    "area_favor": "Area Favor",
    "xp_casual": "Solo XP",
    "xp_normal": "Normal XP",
    "xp_hard": "Hard XP",
    "xp_elite": "Elite XP",
}


def completion_widget_key(quest_id: str, difficulty: str) -> str:
    return f"tier_{quest_id}_{difficulty}"


def _queue_completion_change(quest_id: str, difficulty: str) -> None:
    st.session_state["completion_submission"] = {
        "quest_id": quest_id,
        "difficulty": difficulty,
        "checked": st.session_state[completion_widget_key(quest_id, difficulty)],
    }


def render_sidebar_login() -> None:
    """Render the login prompt in the sidebar.

    Authentication is handled by the configured identity provider through
    Streamlit's built-in OIDC login.
    """
    st.sidebar.header("🛡️ Adventurer Login")
    st.sidebar.markdown("Log in to track favor and quests for your characters.")
    if st.sidebar.button("Log in"):
        st.login()


def render_character_picker(characters: list, selected_id: str | None) -> None:
    """Render the character selector in the sidebar."""
    st.sidebar.subheader("Characters")
    if not characters:
        st.sidebar.info("No characters yet. Create one on the dashboard.")
        return

    options = [None] + [character["id"] for character in characters]
    names = {character["id"]: f"{character['name']} (Lvl {character['level']})" for character in characters}
    index = options.index(selected_id) if selected_id in options else 0
    st.sidebar.selectbox(
        "Active character:",
        options,
        index=index,
        format_func=lambda option: "Dashboard" if option is None else names[option],
        key="character_picker",
    )


def render_character_list(characters: list) -> None:
    """Render the dashboard: character table, sort controls and create form.

    Args:
        characters: Character dicts, already sorted by the caller
    """
    st.header("📜 Your Characters")

    col1, col2 = st.columns(2)
    with col1:
        st.selectbox(
            "Sort by:",
            ["created_at", "name", "level"],
            format_func=lambda field: {"created_at": "Created", "name": "Name", "level": "Level"}[field],
            key="character_sort_field",
        )
    with col2:
        st.checkbox("Descending", value=True, key="character_sort_descending")

    if characters:
        st.dataframe(
            [
                {"Name": c["name"], "Level": c["level"], "Created": c["created_at"]}
                for c in characters
            ],
            hide_index=True,
            use_container_width=True,
        )
    else:
        st.info("You have no characters yet. Create your first one below!")

    st.divider()
    st.subheader("➕ Create Character")
    with st.form(key="create_character_form", clear_on_submit=True):
        name = st.text_input("Character name:", max_chars=50)
        level = st.number_input("Level:", min_value=MIN_LEVEL, max_value=MAX_LEVEL, value=1, step=1)
        if st.form_submit_button("Create Character"):
            st.session_state["create_character_submission"] = {"name": name, "level": level}


def render_character_header(character: dict) -> None:
    """Render the character name and level update form."""
    st.header(f"⚔️ {character['name']}")

    with st.form(key="level_form"):
        level = st.number_input(
            "Current level:",
            min_value=MIN_LEVEL,
            max_value=MAX_LEVEL,
            value=int(character["level"]),
            step=1,
        )
        if st.form_submit_button("Update Level"):
            st.session_state["level_submission"] = level


def render_preference_controls(preferences: dict) -> dict:
    """Render the character's display toggles and duration weights.

    Args:
        preferences: Current merged UI preferences

    Returns:
        Preferences dict reflecting the widgets' current values
    """
    with st.expander("⚙️ Display & favor weights", expanded=False):
        cols = st.columns(3)
        with cols[0]:
            show_raids = st.checkbox("Show Raids", value=preferences["show_raids"])
        with cols[1]:
            on_cormyr = st.checkbox("On Cormyr", value=preferences["on_cormyr_filter"])
        with cols[2]:
            show_completed = st.checkbox("Show Completed", value=preferences["show_completed_quests"])

        weights = render_duration_weights(preferences["duration_weights"])

    return {
        "duration_weights": weights,
        "show_raids": show_raids,
        "on_cormyr_filter": on_cormyr,
        "show_completed_quests": show_completed,
    }


def render_table_controls(prefix: str, fields=SORT_FIELDS, default: str = "level") -> tuple:
    """Render search box and sort controls for one quest table.

    Returns:
        Tuple of (search_term, sort_field, descending)
    """
    search = st.text_input("Search quests by name...", key=f"{prefix}_search")
    col1, col2 = st.columns(2)
    with col1:
        sort_field = st.selectbox(
            "Sort by:",
            list(fields),
            index=list(fields).index(default),
            format_func=lambda field: SORT_FIELD_LABELS.get(field, field),
            key=f"{prefix}_sort_field",
        )
    with col2:
        descending = st.checkbox("Descending", key=f"{prefix}_sort_descending")
    return search, sort_field, descending


def render_duration_weights(weights: dict) -> dict:
    """Render the duration weight inputs.

    Returns:
        Dict of parsed weights for every valid input (invalid inputs keep
        their previous weight and show an error)
    """
    st.caption("Favor weights by quest length")
    parsed = dict(weights)
    cols = st.columns(len(DURATION_TYPES))
    for col, duration in zip(cols, DURATION_TYPES):
        with col:
            text = st.text_input(duration, value=f"{weights[duration]:g}")
            value, error = parse_duration_weight_input(duration, text)
            if error:
                st.error(error)
            else:
                parsed[duration] = value
    return parsed


def render_favor_tracker(rows: list, remaining_by_area: dict, completions: dict) -> None:
    """Render the favor tracker table.

    Args:
        rows: Dicts with 'quest', 'earned' and 'max' for each quest in scope,
            already sorted
        remaining_by_area: Remaining favor keyed by favor area
        completions: Completion flags keyed by quest id
    """
    st.subheader("📈 Favor Tracker")
    st.caption("Track quest completions per difficulty. Max favor adjusts based on available difficulties.")

    if remaining_by_area:
        with st.expander("Remaining favor by area"):
            st.dataframe(
                [
                    {"Area": area, "Remaining": round(value, 1)}
                    for area, value in sorted(remaining_by_area.items())
                ],
                hide_index=True,
                use_container_width=True,
            )

    if not rows:
        st.info("No quests match your current filters.")
        return

    header = st.columns([4, 1, 3, 3, 1, 1, 1, 1, 2])
    for col, label in zip(header, ["Quest", "Lvl", "Pack", "Area", "S", "N", "H", "E", "Favor"]):
        col.markdown(f"**{label}**")

    for row in rows:
        quest = row["quest"]
        status = completions.get(quest.id) or {}
        cols = st.columns([4, 1, 3, 3, 1, 1, 1, 1, 2])
        cols[0].write(quest.name + (" 🏰" if quest.is_raid else ""))
        cols[1].write(quest.level)
        cols[2].write(quest.pack)
        area_remaining = remaining_by_area.get(quest.favor_area, 0) if quest.favor_area else 0
        cols[3].write(f"{quest.favor_area or '—'} ({area_remaining:.1f})")

        for col, difficulty in zip(cols[4:8], DIFFICULTIES):
            with col:
                if difficulty in quest.difficulties:
                    key = completion_widget_key(quest.id, difficulty)
                    if key not in st.session_state:
                        st.session_state[key] = bool(status.get(difficulty))
                    st.checkbox(
                        DIFFICULTY_LABELS[difficulty],
                        key=key,
                        label_visibility="collapsed",
                        on_change=_queue_completion_change,
                        args=(quest.id, difficulty),
                    )
                else:
                    st.write("—")
        cols[8].write(f"{row['earned']:.1f} / {row['max']:.1f}")

    st.divider()
    col1, col2 = st.columns(2)
    with col1:
        if st.button("Reset All Completions", type="secondary"):
            st.session_state["reset_completions_submission"] = True
    with col2:
        uploaded = st.file_uploader("Import completions (CSV)", type=["csv"], key="completion_csv")
        if uploaded is not None and st.button("Import CSV"):
            st.session_state["completion_csv_submission"] = uploaded.getvalue().decode("utf-8-sig")


def render_quest_finder(quests: list, character_level: int) -> None:
    """Render the quests available at the character's level."""
    st.subheader("🔎 Quest Finder")
    st.caption(f"Available quests based on your level ({character_level}) and owned adventure packs.")

    if not quests:
        st.info("No quests match your current filters and level.")
        return

    st.dataframe(
        [
            {
                "Quest Name": quest.name,
                "Level": quest.level,
                "Pack": quest.pack,
                "Raid": "Yes" if quest.is_raid else "No",
            }
            for quest in quests
        ],
        hide_index=True,
        use_container_width=True,
    )


def render_exp_guide(rows: list) -> None:
    """Render adjusted experience per difficulty.

    Args:
        rows: Dicts with 'quest' and 'experience' (per-difficulty adjusted XP)
    """
    st.subheader("✨ Experience Guide")
    st.caption("Experience adjusted for how far your level is above each quest.")

    if not rows:
        st.info("No quests give experience at your level with the current filters.")
        return

    def fmt(value):
        return "—" if value is None else value

    st.dataframe(
        [
            {
                "Quest": row["quest"].name,
                "Level": row["quest"].level,
                "Location": row["quest"].location or "",
                **{DIFFICULTY_LABELS[d]: fmt(row["experience"][d]) for d in DIFFICULTIES},
            }
            for row in rows
        ],
        hide_index=True,
        use_container_width=True,
    )


def render_character_settings(character: dict, favor_areas: list) -> None:
    """Render rename, faction favor and delete controls."""
    st.subheader("🛠️ Character Settings")

    with st.form(key="rename_form"):
        name = st.text_input("Character name:", value=character["name"], max_chars=50)
        if st.form_submit_button("Save Name"):
            st.session_state["rename_submission"] = name

    st.divider()
    st.caption("Current favor per faction (from the in-game favor panel)")
    favor_details = character.get("favor_details") or {}
    with st.form(key="favor_details_form"):
        factions = sorted(set(favor_areas) | set(favor_details))
        values = {}
        for faction in factions:
            current = (favor_details.get(faction) or {}).get("currentFavor", 0)
            values[faction] = st.number_input(faction, min_value=0, value=int(current), step=1)
        if st.form_submit_button("Save Favor"):
            st.session_state["favor_details_submission"] = {
                faction: {"currentFavor": value} for faction, value in values.items()
            }

    st.divider()
    confirm = st.checkbox("I understand this permanently deletes the character", key="confirm_delete")
    if st.button("Delete Character", disabled=not confirm):
        st.session_state["delete_character_submission"] = character["id"]


def render_account_packs(owned_packs: list) -> None:
    """Render the owned adventure packs form."""
    st.header("🎒 Adventure Packs")
    st.caption("Free to Play quests are always available.")

    with st.form(key="owned_packs_form"):
        selected = st.multiselect(
            "Owned adventure packs:",
            ADVENTURE_PACKS,
            default=[pack for pack in owned_packs if pack in ADVENTURE_PACKS],
        )
        if st.form_submit_button("Save Packs"):
            st.session_state["owned_packs_submission"] = selected
