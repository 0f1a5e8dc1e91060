"""
Тесты разбора callback_data и команд.
"""
from types import SimpleNamespace

import pytest

from vetbot.bot.callbacks import CallbackAction, DecodedCallback, decode_callback, encode_callback
from vetbot.bot.events import EventKind, event_from_callback, event_from_message, parse_command


class TestDecodeCallback:
    @pytest.mark.parametrize(
        "data, expected",
        [
            ("add_review_7", DecodedCallback(CallbackAction.ADD_REVIEW, 7)),
            ("review_rate_5", DecodedCallback(CallbackAction.REVIEW_RATE, 5)),
            ("show_reviews_12", DecodedCallback(CallbackAction.SHOW_REVIEWS, 12)),
            ("vet_details_3", DecodedCallback(CallbackAction.VET_DETAILS, 3)),
            ("search_spec_2", DecodedCallback(CallbackAction.SEARCH_SPEC, 2)),
            ("search_day_0", DecodedCallback(CallbackAction.SEARCH_DAY, 0)),
            ("search_clinic_4", DecodedCallback(CallbackAction.SEARCH_CLINIC, 4)),
            ("search_city_1", DecodedCallback(CallbackAction.SEARCH_CITY, 1)),
            ("review_cancel", DecodedCallback(CallbackAction.REVIEW_CANCEL)),
            ("main_menu", DecodedCallback(CallbackAction.MAIN_MENU)),
            ("admin_vets_0", DecodedCallback(CallbackAction.ADMIN_VETS, 0)),
            ("admin_vet_5", DecodedCallback(CallbackAction.ADMIN_VET, 5)),
            ("admin_vet_toggle_5", DecodedCallback(CallbackAction.ADMIN_VET_TOGGLE, 5)),
            ("admin_vet_delete_5", DecodedCallback(CallbackAction.ADMIN_VET_DELETE, 5)),
            ("admin_vet_delete_ok_5", DecodedCallback(CallbackAction.ADMIN_VET_DELETE_CONFIRM, 5)),
            ("admin_clinics_2", DecodedCallback(CallbackAction.ADMIN_CLINICS, 2)),
            ("admin_clinic_delete_ok_3", DecodedCallback(CallbackAction.ADMIN_CLINIC_DELETE_CONFIRM, 3)),
            ("admin_cities_1", DecodedCallback(CallbackAction.ADMIN_CITIES, 1)),
            ("admin_city_4", DecodedCallback(CallbackAction.ADMIN_CITY, 4)),
            ("admin_city_delete_4", DecodedCallback(CallbackAction.ADMIN_CITY_DELETE, 4)),
        ],
    )
    def test_known_actions(self, data, expected):
        assert decode_callback(data) == expected

    def test_non_numeric_argument(self):
        assert decode_callback("review_rate_x") == DecodedCallback(CallbackAction.REVIEW_RATE, None)
        assert decode_callback("add_review_") == DecodedCallback(CallbackAction.ADD_REVIEW, None)

    def test_longest_prefix_wins(self):
        # admin_vet_ тоже префикс этих строк
        for action in (CallbackAction.ADMIN_VET_TOGGLE, CallbackAction.ADMIN_VET_DELETE_CONFIRM):
            data = encode_callback(action, 9)
            assert decode_callback(data) == DecodedCallback(action, 9)

    def test_unknown_data(self):
        assert decode_callback("") is None
        assert decode_callback("noop") is None
        assert decode_callback("main_menu_extra") is None

    def test_encode_matches_decode(self):
        assert encode_callback(CallbackAction.VET_DETAILS, 15) == "vet_details_15"
        assert encode_callback(CallbackAction.MAIN_MENU) == "main_menu"


class TestParseCommand:
    def test_simple(self):
        assert parse_command("/start") == "start"

    def test_with_bot_name_and_args(self):
        assert parse_command("/search_5@vet_bot now") == "search_5"

    def test_case_insensitive(self):
        assert parse_command("/HELP") == "help"

    def test_not_a_command(self):
        assert parse_command("hello /start") is None
        assert parse_command("/") is None
        assert parse_command("") is None


class TestEventConversion:
    @staticmethod
    def _message(text=None, document=None):
        user = SimpleNamespace(id=42, username="owner", first_name="Анна", last_name=None)
        return SimpleNamespace(
            from_user=user,
            chat=SimpleNamespace(id=42),
            message_id=10,
            text=text,
            caption=None,
            document=document,
        )

    def test_command_message(self):
        event = event_from_message(self._message("/search_3"))
        assert event.kind == EventKind.COMMAND
        assert event.command == "search_3"
        assert event.profile.username == "owner"

    def test_text_message(self):
        event = event_from_message(self._message("Отличный врач"))
        assert event.kind == EventKind.TEXT
        assert event.command is None

    def test_document_message(self):
        document = SimpleNamespace(file_id="abc", file_name="vets.xlsx", file_size=1024)
        event = event_from_message(self._message(document=document))
        assert event.kind == EventKind.DOCUMENT
        assert event.document.file_name == "vets.xlsx"

    def test_sticker_is_ignored(self):
        assert event_from_message(self._message()) is None

    def test_callback(self):
        callback = SimpleNamespace(
            id="cb1",
            data="vet_details_5",
            from_user=SimpleNamespace(id=42, username=None, first_name="Анна", last_name=None),
            message=SimpleNamespace(chat=SimpleNamespace(id=-100), message_id=77),
        )
        event = event_from_callback(callback)
        assert event.kind == EventKind.CALLBACK
        assert event.chat_id == -100
        assert event.message_id == 77
        assert event.callback_data == "vet_details_5"
