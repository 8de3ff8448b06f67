from __future__ import annotations

import datetime as dt
import logging
import typing as typ
from pathlib import Path

import pytest

from product_forge.builder import BuildContext
from product_forge.builder.processors import (
    SECTION_PROCESSORS,
    merge_phrase_groups,
    process_codes,
    process_dependencies,
    process_navigation,
    process_options,
    process_phrases,
    process_plugins,
    process_tasks,
    process_templates,
    task_handler_path,
)
from product_forge.config import (
    CodeVersion,
    Dependency,
    NavigationLink,
    NavigationTab,
    Option,
    OptionGroup,
    PhraseGroup,
    Plugin,
    Project,
    ProjectMeta,
    SectionKind,
    Task,
    Template,
)
from product_forge.document import DocumentBuilder

if typ.TYPE_CHECKING:
    from pytest_mock import MockerFixture

STAMP = dt.datetime(2024, 1, 2, 3, 4, 5, tzinfo=dt.UTC)
TIMESTAMP = int(STAMP.timestamp())


@pytest.fixture
def context(tmp_path: Path) -> BuildContext:
    project = Project(
        id="demo",
        meta=ProjectMeta(title="Demo", version="1.2", author="Forge"),
        build_path=tmp_path / "build",
    )
    return BuildContext(
        project=project,
        document=DocumentBuilder(),
        source_root=tmp_path / "forum",
        existing_groups=frozenset({"global", "vbsettings", "cron", "stock"}),
        group_titles={"global": "GLOBAL", "vbsettings": "vBulletin Settings"},
        generated_at=STAMP,
    )


def test_section_table_runs_phrases_last() -> None:
    assert list(SECTION_PROCESSORS) == list(SectionKind)
    assert list(SectionKind)[-1] is SectionKind.PHRASES


def test_dependencies_emit_leaf_per_bound(context: BuildContext) -> None:
    process_dependencies([Dependency("php", "5.2", "")], context)

    assert context.document.serialize() == (
        "<dependencies>\n"
        '\t<dependency type="php" minversion="5.2" maxversion="" />\n'
        "</dependencies>\n"
    )
    assert context.log == ["Added dependency on php"]


def test_codes_omit_empty_uninstall(context: BuildContext) -> None:
    process_codes([CodeVersion(version="*", install="create();")], context)

    assert context.document.serialize() == (
        "<codes>\n"
        '\t<code version="*">\n'
        "\t\t<installcode><![CDATA[create();]]></installcode>\n"
        "\t</code>\n"
        "</codes>\n"
    )


def test_templates_carry_version_author_and_date(context: BuildContext) -> None:
    process_templates([Template(name="box", content="<b>{$x}</b>")], context)

    assert context.document.serialize() == (
        "<templates>\n"
        f'\t<template name="box" version="1.2" username="Forge" date="{TIMESTAMP}"'
        ' templatetype="template"><![CDATA[<b>{$x}</b>]]></template>\n'
        "</templates>\n"
    )


def test_dev_only_plugin_is_omitted(context: BuildContext) -> None:
    plugins = [
        Plugin("init_startup", "Debug", "#if devonly\n$debug = 1;\n#endif"),
        Plugin("global_start", "Boot", "echo 1;", executionorder=3),
    ]
    process_plugins(plugins, context)

    xml = context.document.serialize()
    assert "init_startup" not in xml
    assert '<plugin active="1" executionorder="3">' in xml
    assert "<phpcode><![CDATA[echo 1;]]></phpcode>" in xml
    assert context.log == ["Added plugin on global_start"]


def test_plugin_keeps_code_outside_build_comment(context: BuildContext) -> None:
    code = "#if devonly\n$debug = 1;\n#endif\necho 2;"
    process_plugins([Plugin("global_start", "Boot", code)], context)

    assert "<![CDATA[\necho 2;]]>" in context.document.serialize()


def test_options_add_group_and_setting_phrases(context: BuildContext) -> None:
    group = OptionGroup(
        varname="demo",
        title="Demo Settings",
        displayorder=10,
        options=[
            Option(
                varname="demo_on",
                title="On",
                description="Turns it on",
                displayorder=1,
                datatype="boolean",
                advanced=1,
            )
        ],
    )
    process_options([group], context)

    assert context.document.serialize() == (
        "<options>\n"
        '\t<settinggroup name="demo" displayorder="10">\n'
        '\t\t<setting varname="demo_on" displayorder="1" advanced="1">\n'
        "\t\t\t<datatype>boolean</datatype>\n"
        "\t\t\t<advanced>1</advanced>\n"
        "\t\t</setting>\n"
        "\t</settinggroup>\n"
        "</options>\n"
    )
    settings = context.phrases["vbsettings"]
    assert settings.title == "vBulletin Settings"
    assert settings.phrases == {
        "settinggroup_demo": "Demo Settings",
        "setting_demo_on_title": "On",
        "setting_demo_on_desc": "Turns it on",
    }


def test_existing_option_group_gets_no_title_phrase(context: BuildContext) -> None:
    group = OptionGroup(
        varname="stock",
        title="Stock Settings",
        options=[Option(varname="extra", title="Extra", description="More")],
    )
    process_options([group], context)

    phrases = context.phrases["vbsettings"].phrases
    assert "settinggroup_stock" not in phrases
    assert set(phrases) == {"setting_extra_title", "setting_extra_desc"}


def test_group_title_phrase_is_added_once_for_many_options(
    context: BuildContext, mocker: MockerFixture
) -> None:
    add = mocker.spy(context.phrases, "add")
    group = OptionGroup(
        varname="demo",
        title="Demo Settings",
        options=[
            Option(varname="demo_on", title="On", description="Turns it on"),
            Option(varname="demo_max", title="Max", description="Upper bound"),
            Option(varname="demo_min", title="Min", description="Lower bound"),
        ],
    )
    process_options([group], context)

    names = [call.args[1] for call in add.call_args_list]
    assert names.count("settinggroup_demo") == 1
    assert names == [
        "settinggroup_demo",
        "setting_demo_on_title",
        "setting_demo_on_desc",
        "setting_demo_max_title",
        "setting_demo_max_desc",
        "setting_demo_min_title",
        "setting_demo_min_desc",
    ]
    assert len(context.phrases["vbsettings"].phrases) == 7


def test_task_emits_cron_entry_phrases_and_handler(context: BuildContext) -> None:
    task = Task(
        varname="cleanup",
        title="Cleanup",
        filename="./includes/cron/cleanup.php",
        description="Prunes rows",
        logtext="Pruned",
        hour="3",
        minutes="0",
    )
    process_tasks([task], context)

    assert context.document.serialize() == (
        "<cronentries>\n"
        '\t<cron varname="cleanup" active="1" loglevel="1">\n'
        "\t\t<filename>./includes/cron/cleanup.php</filename>\n"
        '\t\t<scheduling weekday="*" day="*" hour="3" minute="0" />\n'
        "\t</cron>\n"
        "</cronentries>\n"
    )
    cron = context.phrases["cron"]
    assert cron.title == "Scheduled Tasks"
    assert cron.phrases == {
        "task_cleanup_title": "Cleanup",
        "task_cleanup_desc": "Prunes rows",
        "task_cleanup_log": "Pruned",
    }
    assert context.files == [context.source_root / "includes/cron/cleanup.php"]
    assert context.log == ["Added scheduled task entitled Cleanup"]


@pytest.mark.parametrize(
    "filename",
    ["./includes/cron/x.php", "/includes/cron/x.php", ".\\includes\\cron\\x.php"],
)
def test_task_handler_path_normalizes_prefixes(filename: str) -> None:
    assert task_handler_path(Path("/srv/forum"), filename) == Path(
        "/srv/forum/includes/cron/x.php"
    )


def test_navigation_links_follow_tab_and_inherit_scripts(
    context: BuildContext,
) -> None:
    tab = NavigationTab(
        name="demo",
        text="Demo",
        displayorder=5,
        show="showdemo",
        scripts="demo",
        url="demo.php",
        links=[
            NavigationLink(
                name="home",
                text="Home",
                displayorder=1,
                parent="demo",
                scripts="ignored",
                url="demo.php?do=home",
            )
        ],
    )
    process_navigation([tab], context)

    assert context.document.serialize() == (
        "<navigation>\n"
        '\t<tab name="demo" version="1.2" username="Forge">\n'
        "\t\t<active>1</active>\n"
        "\t\t<displayorder>5</displayorder>\n"
        "\t\t<show>showdemo</show>\n"
        "\t\t<scripts>demo</scripts>\n"
        "\t\t<url><![CDATA[demo.php]]></url>\n"
        "\t</tab>\n"
        '\t<link name="home" version="1.2" username="Forge">\n'
        "\t\t<active>1</active>\n"
        "\t\t<displayorder>1</displayorder>\n"
        "\t\t<parent>demo</parent>\n"
        "\t\t<show />\n"
        "\t\t<scripts>demo</scripts>\n"
        "\t\t<url><![CDATA[demo.php?do=home]]></url>\n"
        "\t</link>\n"
        "</navigation>\n"
    )
    nav = context.phrases["global"]
    assert nav.title == "GLOBAL"
    assert nav.phrases == {
        "navigation_tab_demo_text": "Demo",
        "navigation_link_home_text": "Home",
    }


def test_explicit_phrases_override_derived(context: BuildContext) -> None:
    context.phrases.set_title("cron", "Scheduled Tasks")
    context.phrases.add("cron", "task_x_title", "Derived")
    explicit = [
        PhraseGroup(key="cron", phrases={"task_x_title": "Explicit", "extra": "E"}),
        PhraseGroup(key="demo", title="Demo", phrases={"hi": "Hi"}),
    ]

    merged = merge_phrase_groups(explicit, context)

    assert list(merged) == ["cron", "demo"]
    assert merged["cron"].title == "Scheduled Tasks"
    assert merged["cron"].phrases == {"task_x_title": "Explicit", "extra": "E"}


def test_phrases_in_untitled_host_group_take_host_title(
    context: BuildContext,
) -> None:
    groups = [
        PhraseGroup(key="demo", title="Demo", phrases={"hi": "Hi & bye"}),
        PhraseGroup(key="global", phrases={"demo_greeting": "Welcome"}),
    ]
    process_phrases(groups, context)

    assert context.document.serialize() == (
        "<phrases>\n"
        '\t<phrasetype name="Demo" fieldname="demo">\n'
        f'\t\t<phrase name="hi" username="Forge" version="1.2" date="{TIMESTAMP}">'
        "<![CDATA[Hi & bye]]></phrase>\n"
        "\t</phrasetype>\n"
        '\t<phrasetype name="GLOBAL" fieldname="global">\n'
        "\t\t<phrase"
        f' name="demo_greeting" username="Forge" version="1.2" date="{TIMESTAMP}">'
        "<![CDATA[Welcome]]></phrase>\n"
        "\t</phrasetype>\n"
        "</phrases>\n"
    )


def test_untitled_product_group_is_skipped_with_warning(
    context: BuildContext, caplog: pytest.LogCaptureFixture
) -> None:
    groups = [PhraseGroup(key="orphan", phrases={"lost": "Lost"})]

    with caplog.at_level(logging.WARNING, logger="product_forge.builder"):
        process_phrases(groups, context)

    assert context.document.serialize() == "<phrases>\n</phrases>\n"
    assert "untitled group orphan" in caplog.text
