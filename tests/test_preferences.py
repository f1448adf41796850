import config
import preferences


def test_defaults():
    assert preferences.get_company_info()["company_name"] == config.COMPANY_NAME
    assert preferences.get_system_settings() == {
        "auto_disconnect": False,
        "payment_reminders": True,
        "dark_mode": False,
        "data_backup": False,
    }


def test_save_company_info_strips_and_ignores_unknown_keys():
    preferences.save_company_info({"company_name": "  FiberNet  ", "website": "fiber.net", "fax": "123"})

    info = preferences.get_company_info()
    assert info["company_name"] == "FiberNet"
    assert info["website"] == "fiber.net"
    assert "fax" not in info


def test_save_system_settings_partial_update():
    preferences.save_system_settings({"dark_mode": True, "payment_reminders": False})

    settings = preferences.get_system_settings()
    assert settings["dark_mode"] is True
    assert settings["payment_reminders"] is False
    assert settings["auto_disconnect"] is False
