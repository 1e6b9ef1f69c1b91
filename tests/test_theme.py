import pytest

from inframap.model import ServerType
from inframap.render.theme import ThemeColor, get_theme, theme_names


def test_theme_names():
    assert sorted(theme_names()) == ["dark", "default", "monochrome", "ocean"]


@pytest.mark.parametrize("name", ["default", "dark", "monochrome", "ocean"])
def test_get_theme_by_name(name):
    assert get_theme(name).name == name


def test_unknown_theme_falls_back_to_default():
    assert get_theme("no-such-theme") is get_theme("default")


def test_server_type_colour():
    color = get_theme("default").color_for_server_type(ServerType.PRODUCTION)
    assert color == ThemeColor(fill="#FEE2E2", stroke="#DC2626", font="#991B1B")


def test_server_type_accepts_plain_string():
    theme = get_theme("dark")
    assert theme.color_for_server_type("cluster") == theme.color_for_server_type(ServerType.CLUSTER)


def test_unknown_server_type_uses_lab_colour():
    theme = get_theme("ocean")
    assert theme.color_for_server_type("mystery") == theme.color_for_server_type(ServerType.LAB)


def test_element_colour():
    assert get_theme("default").color_for_element("database").fill == "#EDE9FE"


def test_unknown_element_uses_neutral_fallback():
    assert get_theme("dark").color_for_element("nothing") == ThemeColor(
        fill="#F9FAFB", stroke="#D1D5DB", font="#111827"
    )


@pytest.mark.parametrize("name", ["default", "dark", "monochrome", "ocean"])
def test_every_theme_covers_every_server_type(name):
    theme = get_theme(name)
    for server_type in ServerType:
        assert server_type.value in theme.colors