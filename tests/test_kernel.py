"""Tests for the kernel: start-up, mounting and the show/hide state machine."""

import asyncio

import pytest

from mirrorboard.core import (
    ALL_MODULES_STARTED,
    DOM_OBJECTS_CREATED,
    LOCK_STRING_ACTIVE,
    MODULE_DOM_CREATED,
    Kernel,
    Region,
    VisibilityOptions,
)


def run(coro):
    return asyncio.run(coro)


class TestStartup:
    def test_mounts_in_declaration_order(self, started_kernel):
        kernel = started_kernel(
            {"module": "test_text", "position": "top_left", "config": {"text": "a"}},
            {"module": "test_text"},
            {"module": "test_text", "position": "top_left", "config": {"text": "c"}},
            {"module": "test_text", "position": "bottom_bar", "config": {"text": "d"}},
        )
        top_left = kernel.screen.regions[Region.TOP_LEFT]
        assert [c.identifier for c in top_left.modules] == [
            "module_0_test_text",
            "module_2_test_text",
        ]
        assert len(kernel.screen.containers()) == 3
        assert kernel.modules[1].container is None
        assert ">a</div>" in kernel.modules[0].container.content_html()

    def test_container_layout(self, started_kernel):
        kernel = started_kernel(
            {"module": "test_text", "position": "top_left", "classes": "small dimmed"}
        )
        container = kernel.modules[0].container
        assert container.element.id == "module_0_test_text"
        assert container.element.classes == ["module", "test_text", "small", "dimmed"]
        assert container.header.has_class("module-header")
        assert container.content.has_class("module-content")

    def test_header_is_rendered(self, started_kernel):
        kernel = started_kernel({"module": "test_text", "position": "top_left", "header": "News"})
        container = kernel.modules[0].container
        assert container.header_text == "News"
        assert container.header.style["display"] == "block"

    def test_unknown_position_is_not_mounted(self, started_kernel, caplog):
        kernel = started_kernel({"module": "test_text", "position": "somewhere"})
        assert kernel.modules[0].container is None
        assert "unknown position" in caplog.text

    def test_unknown_module_is_skipped(self, started_kernel, caplog):
        kernel = started_kernel({"module": "nope"}, {"module": "test_text"})
        assert [m.identifier for m in kernel.modules] == ["module_1_test_text"]
        assert "Unknown module 'nope'" in caplog.text

    def test_start_sequence(self, make_kernel):
        kernel = make_kernel(
            {"module": "test_text", "position": "top_left"},
            {"module": "test_async", "position": "top_right"},
            {"module": "test_text"},
        )
        seen = []
        kernel.bus.observe(lambda n: seen.append(n.name))
        run(kernel.start())

        assert kernel.running
        assert seen[0] == ALL_MODULES_STARTED
        assert seen[-1] == DOM_OBJECTS_CREATED
        assert seen.count(MODULE_DOM_CREATED) == 2
        assert kernel.modules[1].renders == 1
        assert kernel.modules[2].renders == 0

    def test_failed_render_is_isolated(self, started_kernel, caplog):
        kernel = started_kernel(
            {"module": "test_failing", "position": "top_left"},
            {"module": "test_text", "position": "top_left", "config": {"text": "ok"}},
        )
        failing, healthy = kernel.modules
        assert "Failed to render module 'module_0_test_failing'" in caplog.text
        assert failing.dom_created_hooks == 0
        assert healthy.dom_created_hooks == 1
        assert "ok" in healthy.container.content_html()
        assert healthy.received[-1][0] == DOM_OBJECTS_CREATED

    def test_missing_config_uses_defaults(self, caplog):
        kernel = Kernel(None)
        run(kernel.start())
        assert [m.name for m in kernel.modules] == ["helloworld"] * 4
        assert "Config file is missing!" in caplog.text

    def test_stop_cancels_pending_transitions(self, started_kernel):
        kernel = started_kernel({"module": "test_text", "position": "top_left"})
        module = kernel.modules[0]
        done = []

        async def scenario():
            module.hide(1000, lambda: done.append("hidden"))
            kernel.stop()
            await asyncio.sleep(0.05)

        run(scenario())
        assert done == []
        assert module.transition is None
        assert not kernel.running


class TestUpdateDom:
    def test_requires_a_module(self, started_kernel, caplog):
        kernel = started_kernel()
        assert kernel.update_dom("me") is None
        assert "update_dom: Sender should be a module." in caplog.text

    def test_requires_numeric_speed(self, started_kernel, caplog):
        kernel = started_kernel({"module": "test_text", "position": "top_left"})
        assert kernel.update_dom(kernel.modules[0], "fast") is None
        assert "Speed argument is not a number" in caplog.text

    def test_module_without_position_is_warned(self, started_kernel, caplog):
        kernel = started_kernel({"module": "test_text"})
        module = kernel.modules[0]

        async def scenario():
            return module.update_dom()

        assert run(scenario()) is None
        assert "tries to update the DOM without being displayed" in caplog.text
        assert module.renders == 0
        assert kernel.screen.containers() == []

    def test_identical_content_is_not_reapplied(self, started_kernel):
        kernel = started_kernel({"module": "test_text", "position": "top_left"})
        module = kernel.modules[0]

        async def scenario():
            module.config["text"] = "changed"
            first = kernel.screen.mutations
            assert await module.update_dom()
            second = kernel.screen.mutations
            assert await module.update_dom()
            return first, second, kernel.screen.mutations

        before, after_first, after_second = run(scenario())
        assert after_first == before + 1
        assert after_second == after_first

    def test_cross_fade(self, started_kernel):
        kernel = started_kernel({"module": "test_text", "position": "top_left"})
        module = kernel.modules[0]
        container = module.container

        async def scenario():
            module.config["text"] = "faded"
            assert await module.update_dom(40)
            await asyncio.sleep(0.05)

        run(scenario())
        assert "faded" in container.content_html()
        assert container.opacity == 1
        assert container.position == "static"
        assert not module.hidden

    def test_hidden_module_updates_without_animation(self, started_kernel):
        kernel = started_kernel({"module": "test_text", "position": "top_left"})
        module = kernel.modules[0]

        async def scenario():
            module.hide(0)
            await asyncio.sleep(0.01)
            module.config["text"] = "quiet"
            return await asyncio.wait_for(module.update_dom(5000), 0.5)

        assert run(scenario()) is True
        assert "quiet" in module.container.content_html()
        assert module.container.opacity == 0

    def test_superseded_cross_fade_still_applies_content(self, started_kernel):
        kernel = started_kernel({"module": "test_text", "position": "top_left"})
        module = kernel.modules[0]

        async def scenario():
            module.config["text"] = "late"
            task = module.update_dom(400)
            await asyncio.sleep(0.01)
            module.show(0)
            return await asyncio.wait_for(task, 0.5)

        assert run(scenario()) is True
        assert "late" in module.container.content_html()


class TestVisibility:
    def test_hide_pins_container_out_of_flow(self, started_kernel):
        kernel = started_kernel({"module": "test_text", "position": "top_left"})
        module = kernel.modules[0]
        done = []

        async def scenario():
            module.hide(20, lambda: done.append("hidden"))
            assert module.hidden
            await asyncio.sleep(0.08)

        run(scenario())
        assert done == ["hidden"]
        assert module.container.opacity == 0
        assert module.container.position == "fixed"
        assert not kernel.screen.regions[Region.TOP_LEFT].displayed

    def test_show_right_after_hide_wins(self, started_kernel):
        kernel = started_kernel({"module": "test_text", "position": "top_left"})
        module = kernel.modules[0]
        done = []

        async def scenario():
            module.hide(50, lambda: done.append("hidden"))
            module.show(50, lambda: done.append("shown"))
            await asyncio.sleep(0.15)

        run(scenario())
        assert done == ["shown"]
        assert not module.hidden
        assert module.container.opacity == 1
        assert module.container.position == "static"
        assert kernel.screen.regions[Region.TOP_LEFT].displayed

    def test_lock_strings_block_show(self, started_kernel):
        kernel = started_kernel({"module": "test_text", "position": "top_left"})
        module = kernel.modules[0]
        errors = []

        async def scenario():
            module.hide(0, options={"lockString": "A"})
            await asyncio.sleep(0.01)
            refused = module.show(0, options={"on_error": errors.append})
            await asyncio.sleep(0.01)
            assert module.hidden
            shown = module.show(0, options=VisibilityOptions(lock_string="A"))
            await asyncio.sleep(0.01)
            return refused, shown

        refused, shown = run(scenario())
        assert refused is False
        assert shown is True
        assert len(errors) == 1
        assert errors[0].condition == LOCK_STRING_ACTIVE
        assert errors[0].lock_strings == ["A"]
        assert not module.hidden
        assert module.lock_strings == []

    def test_every_lock_must_be_released(self, started_kernel):
        kernel = started_kernel({"module": "test_text", "position": "top_left"})
        module = kernel.modules[0]

        async def scenario():
            module.hide(0, options={"lock_string": "A"})
            module.hide(0, options={"lock_string": "B"})
            first = module.show(0, options={"lock_string": "A"})
            second = module.show(0, options={"lock_string": "B"})
            await asyncio.sleep(0.01)
            return first, second

        assert run(scenario()) == (False, True)
        assert not module.hidden

    def test_force_clears_every_lock(self, started_kernel):
        kernel = started_kernel({"module": "test_text", "position": "top_left"})
        module = kernel.modules[0]

        async def scenario():
            module.hide(0, options={"lock_string": "A"})
            module.hide(0, options={"lock_string": "B"})
            shown = module.show(0, options={"force": True})
            await asyncio.sleep(0.01)
            return shown

        assert run(scenario()) is True
        assert module.lock_strings == []
        assert not module.hidden
        assert module.container.position == "static"

    def test_region_shown_while_one_module_is_visible(self, started_kernel):
        kernel = started_kernel(
            {"module": "test_text", "position": "top_left"},
            {"module": "test_text", "position": "top_left"},
        )
        first, second = kernel.modules
        region = kernel.screen.regions[Region.TOP_LEFT]
        states = []

        async def scenario():
            first.hide(0)
            await asyncio.sleep(0.01)
            states.append(region.displayed)
            second.hide(0)
            await asyncio.sleep(0.01)
            states.append(region.displayed)
            second.show(0)
            await asyncio.sleep(0.01)
            states.append(region.displayed)

        assert region.displayed
        run(scenario())
        assert states == [True, False, True]

    def test_empty_regions_are_hidden(self, started_kernel):
        kernel = started_kernel({"module": "test_text", "position": "top_left"})
        assert kernel.screen.regions[Region.TOP_LEFT].displayed
        assert not kernel.screen.regions[Region.BOTTOM_BAR].displayed

    def test_unmounted_module_completes_immediately(self, started_kernel):
        kernel = started_kernel({"module": "test_text"})
        module = kernel.modules[0]
        done = []
        module.hide(100, lambda: done.append("hidden"))
        assert module.show(100, lambda: done.append("shown"))
        assert done == ["hidden", "shown"]

    def test_invalid_options(self, caplog):
        options = VisibilityOptions.coerce("loud")
        assert options == VisibilityOptions()
        assert "Invalid show/hide options" in caplog.text


class TestModuleCollection:
    @pytest.fixture
    def kernel(self, started_kernel):
        return started_kernel(
            {"module": "test_text", "classes": "small dimmed"},
            {"module": "test_text", "classes": "large"},
            {"module": "test_async", "classes": "small"},
        )

    def test_with_class(self, kernel):
        modules = kernel.get_modules()
        assert modules.with_class("small") == [kernel.modules[0], kernel.modules[2]]
        assert modules.with_class(["large", "dimmed"]) == kernel.modules[:2]

    def test_except_with_class(self, kernel):
        assert kernel.get_modules().except_with_class("small") == [kernel.modules[1]]

    def test_except_module(self, kernel):
        first = kernel.modules[0]
        assert first not in kernel.get_modules().except_module(first)

    def test_enumerate(self, kernel):
        names = []
        kernel.get_modules().enumerate(lambda m: names.append(m.identifier))
        assert names == [m.identifier for m in kernel.modules]

    def test_get_modules_is_a_copy(self, kernel):
        copy = kernel.get_modules()
        copy.clear()
        assert len(kernel.modules) == 3

    def test_get_module(self, kernel):
        assert kernel.get_module("module_1_test_text") is kernel.modules[1]
        assert kernel.get_module("module_9_clock") is None
