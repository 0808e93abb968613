import logging

import pytest

from wizardshell.controller import WizardController
from wizardshell.pages import DynamicPage
from wizardshell.resources import (
    COMPONENT_CONTEXT,
    CONTROL_CONTEXT,
    NO_PAGE,
    RunMode,
    WizardButton,
    WizardPage,
)

VALIDATOR_SCRIPT = """
var verdict = true;
function Component() {
    installer.set_validator_for_custom_page("Options", "validateOptions");
}
Component.prototype.validateOptions = function (page) { return verdict; };
"""


class TestDefaultPages:
    def test_standard_pages_registered_in_order(self, wizard):
        assert wizard.page_ids() == [
            WizardPage.INTRODUCTION,
            WizardPage.TARGET_DIRECTORY,
            WizardPage.COMPONENT_SELECTION,
            WizardPage.LICENSE_CHECK,
            WizardPage.READY_FOR_INSTALLATION,
            WizardPage.PERFORM_INSTALLATION,
            WizardPage.INSTALLATION_FINISHED,
            WizardPage.INSTALLATION_ERROR,
        ]

    def test_lookup_by_object_name(self, wizard):
        page = wizard.page_by_object_name("LicenseAgreementPage")
        assert page is wizard.page_by_id(WizardPage.LICENSE_CHECK)
        assert wizard.page_by_object_name("Missing") is None

    def test_widget_lookup_searches_page_children(self, wizard):
        widget = wizard.page_widget_by_object_name("TargetDirectoryLineEdit")
        assert widget is not None
        assert widget.objectName() == "TargetDirectoryLineEdit"

    def test_start_enters_first_page(self, wizard):
        assert wizard.current_page_id() == NO_PAGE
        assert wizard.start()
        assert wizard.current_page_id() == WizardPage.INTRODUCTION


class TestDynamicPages:
    def test_insert_returns_requested_free_slot(self, wizard, make_content):
        page_id = wizard.insert_dynamic_page(make_content("Options"), 0x1500)

        assert page_id == 0x1500
        assert isinstance(wizard.page_by_id(0x1500), DynamicPage)
        assert wizard.page_by_id(0x1500).objectName() == "DynamicOptions"

    def test_insert_into_taken_slot_decrements(self, wizard, make_content):
        first = wizard.insert_dynamic_page(make_content("First"), 40)
        second = wizard.insert_dynamic_page(make_content("Second"), 40)
        third = wizard.insert_dynamic_page(make_content("Third"), 40)

        assert (first, second, third) == (40, 39, 38)

    def test_insert_without_free_slot_is_refused(self, qtbot, wizard, make_content, caplog):
        assert wizard.insert_dynamic_page(make_content("First"), 0) == 0
        pages_before = len(list(wizard.registry.pages()))

        with caplog.at_level(logging.WARNING, logger="wizardshell.controller"):
            with qtbot.assertNotEmitted(wizard.page_list_changed):
                page_id = wizard.insert_dynamic_page(make_content("Second"), 0)

        assert page_id == NO_PAGE
        assert len(list(wizard.registry.pages())) == pages_before
        assert wizard.page_by_id(NO_PAGE) is None
        assert "No free slot" in caplog.text

    def test_insert_before_standard_page(self, wizard, make_content):
        page_id = wizard.insert_dynamic_page(make_content("Options"), WizardPage.TARGET_DIRECTORY)

        assert page_id == WizardPage.TARGET_DIRECTORY - 1
        assert wizard.page_by_id(WizardPage.TARGET_DIRECTORY).objectName() == "TargetDirectoryPage"

    def test_reinserting_same_content_keeps_one_page(self, wizard, make_content):
        content = make_content("Options")
        wizard.insert_dynamic_page(content, 0x1500)
        wizard.insert_dynamic_page(content, 0x2500)

        hosting = [p for p in wizard.registry.pages() if getattr(p, "content", None) is content]
        assert len(hosting) == 1
        assert 0x1500 not in wizard.registry
        assert 0x2500 in wizard.registry

    def test_insert_binds_into_both_contexts(self, wizard, contexts, make_content):
        wizard.insert_dynamic_page(make_content("Options"), 0x1500)

        for name in (CONTROL_CONTEXT, COMPONENT_CONTEXT):
            assert contexts[name].has_global("DynamicOptions")
            assert contexts[name].has_global("OptionsFlags")

    def test_remove_unbinds_and_keeps_content_alive(self, wizard, contexts, make_content):
        content = make_content("Options")
        wizard.insert_dynamic_page(content, 0x1500)

        wizard.remove_dynamic_page(content)

        assert 0x1500 not in wizard.registry
        assert content.parent() is None
        for name in (CONTROL_CONTEXT, COMPONENT_CONTEXT):
            assert not contexts[name].has_global("DynamicOptions")
            assert not contexts[name].has_global("Options")

    def test_remove_unknown_content_is_harmless(self, wizard, make_content):
        ids = wizard.page_ids()
        wizard.remove_dynamic_page(make_content("Nobody"))
        assert wizard.page_ids() == ids

    def test_engine_requests_reach_the_controller(self, wizard, core, make_content):
        content = make_content("Options")
        core.add_wizard_page(content, 0x3500)
        assert wizard.registry.find_by_content(content) == 0x3500

        core.remove_wizard_page(content)
        assert wizard.registry.find_by_content(content) is None

    def test_page_list_changed_emitted(self, qtbot, wizard, make_content):
        with qtbot.waitSignal(wizard.page_list_changed):
            wizard.insert_dynamic_page(make_content("Options"), 0x1500)

    def test_navigation_reaches_dynamic_page(self, wizard, make_content):
        wizard.insert_dynamic_page(make_content("Options"), WizardPage.TARGET_DIRECTORY - 1)
        wizard.start()

        assert wizard.advance()
        assert wizard.current_page_id() == WizardPage.TARGET_DIRECTORY - 1


class TestVisibility:
    def test_hide_and_restore_round_trip(self, wizard):
        page = wizard.page_by_id(WizardPage.COMPONENT_SELECTION)
        ids = wizard.page_ids()

        wizard.set_page_visible(WizardPage.COMPONENT_SELECTION, False)
        assert WizardPage.COMPONENT_SELECTION not in wizard.page_ids()
        assert wizard.is_page_hidden(WizardPage.COMPONENT_SELECTION)

        wizard.set_page_visible(WizardPage.COMPONENT_SELECTION, True)
        assert wizard.page_ids() == ids
        assert wizard.page_by_id(WizardPage.COMPONENT_SELECTION) is page

    def test_hidden_page_is_skipped_by_navigation(self, wizard):
        wizard.set_page_visible(WizardPage.TARGET_DIRECTORY, False)
        wizard.start()

        wizard.advance()
        assert wizard.current_page_id() == WizardPage.COMPONENT_SELECTION

    def test_show_into_taken_slot_is_refused(self, wizard, make_content, caplog):
        wizard.set_page_visible(WizardPage.COMPONENT_SELECTION, False)
        wizard.insert_dynamic_page(make_content("Squatter"), WizardPage.COMPONENT_SELECTION)

        with caplog.at_level(logging.WARNING, logger="wizardshell.controller"):
            wizard.set_page_visible(WizardPage.COMPONENT_SELECTION, True)

        assert wizard.page_by_id(WizardPage.COMPONENT_SELECTION).objectName() == "DynamicSquatter"
        assert wizard.is_page_hidden(WizardPage.COMPONENT_SELECTION)
        assert "taken" in caplog.text

    def test_engine_visibility_request_is_queued(self, qtbot, wizard, core):
        core.set_default_page_visible(WizardPage.LICENSE_CHECK, False)
        qtbot.waitUntil(lambda: wizard.is_page_hidden(WizardPage.LICENSE_CHECK))

    def test_target_directory_hidden_outside_install_mode(self, qapp, core, bridge, settings, exit_recorder):
        core.set_mode(RunMode.MAINTAIN)
        controller = WizardController(core, bridge, settings, exit_app=exit_recorder)
        controller.add_default_pages()

        assert controller.is_page_hidden(WizardPage.TARGET_DIRECTORY)


class TestNavigation:
    def test_incomplete_page_blocks_advance(self, qtbot, wizard, make_content):
        content = make_content("Options")
        content.setProperty("complete", False)
        page_id = wizard.insert_dynamic_page(content, WizardPage.TARGET_DIRECTORY - 1)
        wizard.start()
        wizard.advance()

        with qtbot.waitSignal(wizard.validation_failed) as blocker:
            assert not wizard.advance()

        assert blocker.args[0] == page_id
        assert wizard.current_page_id() == page_id

        content.setProperty("complete", True)
        assert wizard.advance()

    def test_back_returns_to_previous_page(self, wizard):
        wizard.start()
        wizard.advance()
        assert wizard.go_back()
        assert wizard.current_page_id() == WizardPage.INTRODUCTION
        assert not wizard.go_back()

    def test_cannot_go_back_across_commit_page(self, wizard, make_content):
        content = make_content("Point")
        content.setProperty("commit", True)
        page_id = wizard.insert_dynamic_page(content, WizardPage.TARGET_DIRECTORY - 1)
        wizard.start()
        wizard.advance()
        assert wizard.current_page_id() == page_id

        wizard.advance()
        assert wizard.current_page_id() == WizardPage.TARGET_DIRECTORY
        assert not wizard.go_back()

    def test_press_next_and_back(self, wizard):
        wizard.start()
        wizard.press(WizardButton.NEXT)
        assert wizard.current_page_id() == WizardPage.TARGET_DIRECTORY
        wizard.press(WizardButton.BACK)
        assert wizard.current_page_id() == WizardPage.INTRODUCTION

    def test_click_button_is_deferred(self, qtbot, wizard):
        wizard.start()
        wizard.click_button(WizardButton.NEXT)
        assert wizard.current_page_id() == WizardPage.INTRODUCTION
        qtbot.waitUntil(lambda: wizard.current_page_id() == WizardPage.TARGET_DIRECTORY)

    def test_current_id_changed_relayed(self, qtbot, wizard):
        with qtbot.waitSignal(wizard.current_id_changed) as blocker:
            wizard.start()
        assert blocker.args == [WizardPage.INTRODUCTION]

    def test_control_script_hook_runs_on_entering(self, wizard, contexts):
        control = contexts[CONTROL_CONTEXT]
        control.load(
            "var seen = [];"
            "function Controller() {}"
            "Controller.prototype.IntroductionPageCallback = function () {"
            "  seen.push(gui.current_page_id());"
            "};"
        )
        wizard.start()
        assert control.evaluate("seen[0]").toInt() == WizardPage.INTRODUCTION


class TestCancel:
    def test_cancel_when_confirmed(self, qtbot, wizard):
        wizard.start()
        wizard.set_modified(True)
        with qtbot.waitSignal(wizard.rejected):
            wizard.request_cancel()
        assert not wizard.state.modified

    def test_cancel_declined(self, qtbot, wizard):
        wizard.confirm_cancel = lambda: False
        wizard.start()
        with qtbot.assertNotEmitted(wizard.rejected):
            wizard.request_cancel()

    def test_cancel_ignored_on_uninterruptible_page(self, qtbot, wizard):
        asked = []
        wizard.confirm_cancel = lambda: asked.append(True) or True
        page = wizard.page_by_id(WizardPage.PERFORM_INSTALLATION)
        wizard.state.current_id = WizardPage.PERFORM_INSTALLATION

        assert not page.is_interruptible()
        with qtbot.assertNotEmitted(wizard.rejected):
            wizard.request_cancel()
        assert asked == []

    def test_reject_without_prompt_skips_confirmation(self, qtbot, wizard):
        wizard.confirm_cancel = lambda: pytest.fail("should not ask")
        with qtbot.waitSignal(wizard.rejected):
            wizard.reject_without_prompt()


class TestCustomWidgets:
    def test_insert_and_remove_widget(self, wizard, contexts, make_content):
        widget = make_content("ExtraOptions")
        wizard.insert_widget(widget, WizardPage.TARGET_DIRECTORY, 0)

        page = wizard.page_by_id(WizardPage.TARGET_DIRECTORY)
        assert page.custom_widgets() == [widget]
        assert contexts[CONTROL_CONTEXT].has_global("ExtraOptions")

        wizard.remove_widget(widget)
        assert page.custom_widgets() == []
        assert not contexts[CONTROL_CONTEXT].has_global("ExtraOptions")

    def test_widgets_ordered_by_position_then_insertion(self, wizard, make_content):
        late = make_content("Late")
        first = make_content("First")
        second = make_content("Second")
        page_id = WizardPage.COMPONENT_SELECTION
        wizard.insert_widget(late, page_id, 5)
        wizard.insert_widget(first, page_id, 1)
        wizard.insert_widget(second, page_id, 1)

        assert wizard.page_by_id(page_id).custom_widgets() == [first, second, late]

    def test_moving_widget_between_pages(self, wizard, make_content):
        widget = make_content("Mover")
        wizard.insert_widget(widget, WizardPage.TARGET_DIRECTORY)
        wizard.insert_widget(widget, WizardPage.LICENSE_CHECK)

        assert wizard.page_by_id(WizardPage.TARGET_DIRECTORY).custom_widgets() == []
        assert wizard.page_by_id(WizardPage.LICENSE_CHECK).custom_widgets() == [widget]

    def test_insert_on_missing_page_is_ignored(self, wizard, make_content):
        widget = make_content("Orphan")
        wizard.insert_widget(widget, 0x4242)
        assert widget.parent() is None

    def test_engine_widget_requests(self, wizard, core, make_content):
        widget = make_content("ExtraOptions")
        core.add_wizard_page_item(widget, WizardPage.TARGET_DIRECTORY, 0)
        assert widget in wizard.page_by_id(WizardPage.TARGET_DIRECTORY).custom_widgets()
        core.remove_wizard_page_item(widget)
        assert widget not in wizard.page_by_id(WizardPage.TARGET_DIRECTORY).custom_widgets()


class TestCustomPageValidator:
    @pytest.fixture
    def options_page(self, wizard, make_content):
        page_id = wizard.insert_dynamic_page(make_content("Options"), WizardPage.TARGET_DIRECTORY - 1)
        return wizard.page_by_id(page_id)

    def test_script_verdict_decides(self, wizard, contexts, options_page):
        component = contexts[COMPONENT_CONTEXT]
        component.load(VALIDATOR_SCRIPT)

        assert options_page.validate_page()
        component.evaluate("verdict = false;")
        assert not options_page.validate_page()
        assert options_page.error_text()

    def test_missing_callback_allows_page(self, wizard, contexts, options_page):
        component = contexts[COMPONENT_CONTEXT]
        component.load(
            "function Component() {"
            '  installer.set_validator_for_custom_page("Options", "notThere");'
            "}"
        )
        assert options_page.validate_page()

    def test_validator_for_unknown_page_is_ignored(self, wizard):
        wizard.set_validator_for_custom_page("Nothing", "validate")
