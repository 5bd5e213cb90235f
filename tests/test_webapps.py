from dataclasses import replace
from pathlib import Path

import pytest
from conftest import SVG, png_bytes

from wam.errors import IoError, ParseError, ValidationError
from wam.models import Browser, BrowserFamily, WebAppLauncher
from wam.registry import BrowserRegistry
from wam.webapps import LauncherStore


@pytest.fixture
def store(config, registry):
    return LauncherStore(config, registry)


def launchers(listed):
    return [x for x in listed if isinstance(x, WebAppLauncher)]


def test_create_then_list_round_trip(store, firefox, config):
    launcher = store.new_launcher("Mail", "https://mail.example.com", browser=firefox, category="Office",
                                  custom_parameters="--width 900", is_incognito=True)

    store.create(launcher)
    listed = store.list()

    assert len(listed) == 1
    got = listed[0]
    assert (got.codename, got.name, got.url) == (launcher.codename, "Mail", "https://mail.example.com")
    assert got.browser == firefox
    assert got.category == "Office"
    assert got.custom_parameters == "--width 900"
    assert got.is_isolated and got.is_incognito and not got.show_navbar
    assert got.is_valid

    text = store.entry_path(launcher.codename).read_text(encoding="utf-8")
    assert "X-WAM-Managed=true" in text
    assert f"StartupWMClass=WAM-{launcher.codename}" in text
    assert "Categories=Office;" in text
    assert "Icon=applications-internet" in text
    assert f"Exec={firefox.executable} --class WAM-{launcher.codename}" in text
    assert (config.profiles_dir / launcher.codename).is_dir()


def test_bare_host_is_normalized_before_validation(store, chromium):
    launcher = store.new_launcher("Example", "example.com", browser=chromium)

    assert launcher.url == "https://example.com"
    assert launcher.is_valid
    store.create(launcher)
    assert store.list()[0].url == "https://example.com"


@pytest.mark.parametrize("url", ["ftp://files.example.com", "file:///etc/passwd", "javascript://x"])
def test_non_web_schemes_are_kept_and_rejected(store, firefox, url):
    launcher = WebAppLauncher(codename="X1234", name="A", url=url, browser=firefox)

    assert launcher.url == url
    assert not launcher.is_valid
    with pytest.raises(ValidationError):
        store.create(launcher)


def test_uppercase_scheme_is_accepted(firefox):
    assert WebAppLauncher(codename="X1234", name="A", url="HTTPS://a.io", browser=firefox).is_valid


@pytest.mark.parametrize("name,url", [("", "https://a.io"), ("A", ""), ("A", "https://"), ("A", "not a url")])
def test_invalid_launcher_is_never_written(store, firefox, config, name, url):
    launcher = WebAppLauncher(codename="X1234", name=name, url=url, browser=firefox)

    assert not launcher.is_valid
    with pytest.raises(ValidationError):
        store.create(launcher)
    assert not store.entry_path("X1234").exists()
    assert store.list() == []


def test_missing_or_unknown_browser_is_a_validation_error(store, tmp_path):
    with pytest.raises(ValidationError):
        store.create(WebAppLauncher(codename="A1111", name="A", url="https://a.io", browser=None))

    ghost = Browser("Opera", BrowserFamily.CHROMIUM, str(tmp_path / "bin" / "opera"), True)
    with pytest.raises(ValidationError):
        store.create(WebAppLauncher(codename="A2222", name="A", url="https://a.io", browser=ghost))


def test_no_browsers_installed_is_a_validation_error(config):
    empty = LauncherStore(config, BrowserRegistry([]))
    launcher = empty.new_launcher("A", "https://a.io")

    assert launcher.browser is None
    with pytest.raises(ValidationError):
        empty.create(launcher)


def test_unknown_category_rejected():
    with pytest.raises(ValidationError):
        WebAppLauncher(codename="A1", name="A", url="https://a.io", browser=None, category="Spreadsheets")


def test_delete_removes_entry_icon_and_profile_and_is_idempotent(store, chromium, config, tmp_path):
    picked = tmp_path / "picked.png"
    picked.write_bytes(png_bytes())
    created = store.create(store.new_launcher("Chat", "chat.example.com", browser=chromium, icon_path=str(picked)))
    assert store.icons.contains(created.icon_path)

    store.delete(created)
    store.delete(created)

    assert store.list() == []
    assert not store.entry_path(created.codename).exists()
    assert not Path(created.icon_path).exists()
    assert not (config.profiles_dir / created.codename).exists()
    assert picked.exists()


def test_external_icon_is_copied_into_the_store(store, firefox, config, tmp_path):
    picked = tmp_path / "Downloads" / "logo.png"
    picked.parent.mkdir()
    picked.write_bytes(png_bytes())

    created = store.create(store.new_launcher("My App", "https://app.io", browser=firefox, icon_path=str(picked)))

    assert created.icon_path == str(config.icons_dir / f"MyApp-{created.codename}.png")
    assert store.list()[0].icon_path == created.icon_path
    assert f"Icon={created.icon_path}" in store.entry_path(created.codename).read_text(encoding="utf-8")


def test_missing_external_icon_fails_create(store, firefox, tmp_path):
    launcher = store.new_launcher("A", "https://a.io", browser=firefox, icon_path=str(tmp_path / "nope.png"))

    with pytest.raises(IoError):
        store.create(launcher)
    assert store.list() == []


def test_unwritable_store_raises_io_error(config, registry, firefox):
    config.applications_dir.parent.mkdir(parents=True, exist_ok=True)
    config.applications_dir.write_text("not a directory", encoding="utf-8")
    store = LauncherStore(config, registry)

    with pytest.raises(IoError):
        store.create(WebAppLauncher(codename="A1234", name="A", url="https://a.io", browser=firefox))


def test_one_malformed_entry_does_not_hide_the_others(store, firefox, config):
    good = store.create(store.new_launcher("Good", "https://good.io", browser=firefox))
    (config.applications_dir / "wam-Broken0000.desktop").write_text(
        "X-WAM-Managed=true\nName=broken\n", encoding="utf-8")

    listed = store.list()

    assert len(listed) == 2
    errors = [x for x in listed if isinstance(x, ParseError)]
    assert len(errors) == 1
    assert errors[0].path.name == "wam-Broken0000.desktop"
    assert [x.codename for x in launchers(listed)] == [good.codename]


@pytest.mark.parametrize("body", [
    "Name=x\nX-WAM-URL=https://a.io\n",                                        # no codename / browser
    "Name=x\nX-WAM-Codename=x1\nX-WAM-URL=https://a.io\nExec=/bin/ff \"oops\nX-WAM-Browser=/bin/ff\n",
    "Name=x\nX-WAM-Codename=x1\nX-WAM-URL=https://a.io\nX-WAM-Browser=/bin/ff\nX-WAM-Isolated=perhaps\n",
    "Name=x\nX-WAM-Codename=x1\nX-WAM-URL=https://a.io\nX-WAM-Browser=/bin/ff\nX-WAM-Category=Spreadsheets\n",
])
def test_malformed_entries_become_parse_errors(store, config, body):
    config.applications_dir.mkdir(parents=True)
    (config.applications_dir / "wam-x1.desktop").write_text(
        "[Desktop Entry]\nX-WAM-Managed=true\n" + body, encoding="utf-8")

    listed = store.list()

    assert len(listed) == 1
    assert isinstance(listed[0], ParseError)


def test_foreign_entries_are_ignored(store, firefox, config):
    config.applications_dir.mkdir(parents=True)
    (config.applications_dir / "firefox.desktop").write_text(
        "[Desktop Entry]\nName=Firefox\nExec=firefox %u\n", encoding="utf-8")
    (config.applications_dir / "garbage.desktop").write_bytes(b"\xff\xfe not even text")

    store.create(store.new_launcher("Mine", "https://mine.io", browser=firefox))

    assert [x.name for x in store.list()] == ["Mine"]


def test_browser_is_taken_from_exec_when_field_is_missing(store, chromium, config):
    config.applications_dir.mkdir(parents=True)
    (config.applications_dir / "wam-Old1234.desktop").write_text(
        "[Desktop Entry]\nName=Old\nExec=" + chromium.executable + " --app=https://old.io\n"
        "X-WAM-Managed=true\nX-WAM-Codename=Old1234\nX-WAM-URL=https://old.io\n", encoding="utf-8")

    (old,) = store.list()

    assert old.browser == chromium
    assert old.is_valid


def test_uninstalled_browser_lists_as_invalid(store, firefox, config, bin_dir):
    created = store.create(store.new_launcher("Mail", "https://mail.io", browser=firefox))
    (bin_dir / "firefox").unlink()

    fresh = LauncherStore(config, BrowserRegistry.detect(config))
    (listed,) = fresh.list()

    assert listed.codename == created.codename
    assert listed.browser.executable == firefox.executable
    assert not listed.is_valid


def test_edit_keeps_codename_and_replaces_entry(store, firefox, chromium):
    original = store.create(store.new_launcher("Old Name", "https://a.io", browser=firefox))

    edited = WebAppLauncher(codename="ignored", name="New Name", url="https://a.io/inbox", browser=chromium)
    saved = store.save(edited, previous=original)

    listed = store.list()
    assert saved.codename == original.codename
    assert [(x.codename, x.name, x.url) for x in listed] == [(original.codename, "New Name", "https://a.io/inbox")]
    assert listed[0].browser == chromium


def test_invalid_edit_leaves_previous_entry_alone(store, firefox):
    original = store.create(store.new_launcher("Keep", "https://a.io", browser=firefox))

    with pytest.raises(ValidationError):
        store.save(replace(original, name=""), previous=original)

    assert [x.name for x in store.list()] == ["Keep"]


def test_edit_with_new_icon_removes_the_old_one(store, firefox, config, tmp_path):
    first = tmp_path / "a.png"
    first.write_bytes(png_bytes())
    original = store.create(store.new_launcher("Old", "https://a.io", browser=firefox, icon_path=str(first)))

    second = tmp_path / "b.png"
    second.write_bytes(png_bytes(color=(0, 0, 255, 255)))
    saved = store.save(replace(original, name="New", icon_path=str(second)), previous=original)

    assert sorted(p.name for p in config.icons_dir.iterdir()) == [f"New-{original.codename}.png"]
    assert saved.icon_path == str(config.icons_dir / f"New-{original.codename}.png")


def test_shared_icon_survives_deleting_one_owner(store, firefox, tmp_path):
    picked = tmp_path / "p.png"
    picked.write_bytes(png_bytes())
    a = store.create(store.new_launcher("Mail", "https://a.io", browser=firefox, icon_path=str(picked)))
    b = store.create(store.new_launcher("Other", "https://b.io", browser=firefox, icon_path=a.icon_path))
    assert a.icon_path == b.icon_path

    store.delete(a)

    assert [x.codename for x in store.list()] == [b.codename]
    assert Path(b.icon_path).exists()


def test_same_title_launchers_keep_their_own_icons(store, firefox, tmp_path):
    first_pick = tmp_path / "a.png"
    first_pick.write_bytes(png_bytes(color=(255, 0, 0, 255)))
    second_pick = tmp_path / "b.svg"
    second_pick.write_bytes(SVG)

    a = store.create(store.new_launcher("Mail", "https://a.io", browser=firefox, icon_path=str(first_pick)))
    b = store.create(store.new_launcher("Mail", "https://b.io", browser=firefox, icon_path=str(second_pick)))

    assert a.icon_path != b.icon_path
    assert Path(a.icon_path).read_bytes() == first_pick.read_bytes()
    assert Path(b.icon_path).read_bytes() == SVG

    store.delete(b)
    assert Path(a.icon_path).read_bytes() == first_pick.read_bytes()


def test_non_ascii_titles_do_not_share_icon_files(store, firefox, tmp_path):
    red = tmp_path / "red.png"
    red.write_bytes(png_bytes(color=(255, 0, 0, 255)))
    blue = tmp_path / "blue.png"
    blue.write_bytes(png_bytes(color=(0, 0, 255, 255)))

    a = store.create(store.new_launcher("メール", "https://a.io", browser=firefox, icon_path=str(red)))
    b = store.create(store.new_launcher("Почта", "https://b.io", browser=firefox, icon_path=str(blue)))

    assert a.codename != b.codename
    assert a.codename.startswith("WebApp")
    assert a.icon_path != b.icon_path
    assert Path(a.icon_path).read_bytes() == red.read_bytes()
    assert Path(b.icon_path).read_bytes() == blue.read_bytes()


@pytest.mark.parametrize("codename", ["../victim", "a/b", "", "Mail 1234", "mail.1"])
def test_codename_must_be_alphanumeric(codename):
    with pytest.raises(ValidationError):
        WebAppLauncher(codename=codename, name="A", url="https://a.io", browser=None)


def test_traversing_codename_is_a_parse_error_and_deletes_nothing(store, firefox, config):
    victim = config.data_dir / "victim"
    victim.mkdir(parents=True)
    (victim / "keep.txt").write_text("x", encoding="utf-8")
    config.applications_dir.mkdir(parents=True)
    (config.applications_dir / "wam-evil.desktop").write_text(
        "[Desktop Entry]\nName=Evil\nX-WAM-Managed=true\nX-WAM-Codename=../victim\n"
        f"X-WAM-URL=https://a.io\nX-WAM-Browser={firefox.executable}\n", encoding="utf-8")

    (listed,) = store.list()

    assert isinstance(listed, ParseError)
    assert (victim / "keep.txt").exists()


def test_entry_whose_file_name_does_not_match_codename_is_a_parse_error(store, firefox, config):
    created = store.create(store.new_launcher("Mail", "https://a.io", browser=firefox))
    store.entry_path(created.codename).rename(config.applications_dir / "wam-Renamed1234.desktop")

    (listed,) = store.list()

    assert isinstance(listed, ParseError)
    assert listed.path.name == "wam-Renamed1234.desktop"


def test_delete_refuses_profile_outside_the_profiles_dir(store, firefox, config, tmp_path):
    created = store.create(store.new_launcher("Mail", "https://a.io", browser=firefox))
    outside = tmp_path / "precious"
    outside.mkdir()
    profile = store.profile_dir(created.codename)
    profile.rmdir()
    profile.symlink_to(outside, target_is_directory=True)

    with pytest.raises(IoError):
        store.delete(created)

    assert outside.is_dir()
    assert store.entry_path(created.codename).exists()


def test_failed_delete_keeps_entry_and_icon(store, firefox, config, tmp_path):
    picked = tmp_path / "p.png"
    picked.write_bytes(png_bytes())
    created = store.create(store.new_launcher("Mail", "https://a.io", browser=firefox, icon_path=str(picked)))
    entry = store.entry_path(created.codename)
    entry.unlink()
    entry.mkdir()
    (entry / "squatter").write_text("x", encoding="utf-8")

    with pytest.raises(IoError):
        store.delete(created)

    assert Path(created.icon_path).exists()
    assert (config.profiles_dir / created.codename).is_dir()


def test_failed_entry_write_leaves_icon_store_unchanged(store, firefox, config, tmp_path, monkeypatch):
    picked = tmp_path / "p.png"
    picked.write_bytes(png_bytes())
    launcher = store.new_launcher("Mail", "https://a.io", browser=firefox, icon_path=str(picked))

    def refuse(*args, **kwargs):
        raise PermissionError("read-only file system")

    monkeypatch.setattr("wam.webapps.os.chmod", refuse)
    with pytest.raises(IoError):
        store.create(launcher)

    assert not store.entry_path(launcher.codename).exists()
    assert [p.name for p in config.icons_dir.iterdir()] == []


def test_new_codename_avoids_existing_entries(store, firefox, monkeypatch):
    digits = iter("11111111" + "2222")
    monkeypatch.setattr("wam.webapps.random.choice", lambda seq: next(digits))

    first = store.new_codename("My Mail!")
    store.create(WebAppLauncher(codename=first, name="My Mail!", url="https://a.io", browser=firefox))
    second = store.new_codename("My Mail!")

    assert first == "MyMail1111"
    assert second == "MyMail2222"


def test_get(store, firefox):
    created = store.create(store.new_launcher("A", "https://a.io", browser=firefox))

    assert store.get(created.codename).name == "A"
    assert store.get("nothing") is None
