from streamlit.testing.v1 import AppTest


def _render_payment_form():
    import app

    app.payment_form(
        {"id": "c1", "first_name": "Juan", "last_name": "Cruz", "plan": "basic", "due_date": "2099-01-15"}
    )


def test_new_due_date_preview_follows_extension():
    at = AppTest.from_function(_render_payment_form, default_timeout=30).run()
    assert not at.exception
    assert any(c.value == "New due date: Feb 15, 2099" for c in at.caption)

    at.selectbox(key="extend_c1").set_value(12).run()

    assert any(c.value == "New due date: Jan 15, 2100" for c in at.caption)
