from api.services.message_template import render_template

from .fakes import make_customer


class TestRenderTemplate:
    def test_substitutes_every_known_placeholder(self):
        customer = make_customer(
            name="Ahmad", sender_name="Encik Ahmad", save_name="Ahmad KL", age=40, pg_code="PG7"
        )
        rendered = render_template(
            "Hi {Name} / {SenderName} / {SaveName} / {Age} / {PGCode}", customer
        )
        assert rendered == "Hi Ahmad / Encik Ahmad / Ahmad KL / 40 / PG7"

    def test_sender_name_falls_back_to_name(self):
        customer = make_customer(name="Siti", sender_name=None)
        assert render_template("Selamat Hari Jadi, {SenderName}!", customer) == (
            "Selamat Hari Jadi, Siti!"
        )

    def test_missing_fields_become_empty(self):
        customer = make_customer(name="Siti", save_name=None, age=None, pg_code=None)
        assert render_template("[{SaveName}][{Age}][{PGCode}]", customer) == "[][][]"

    def test_repeated_placeholders_are_all_replaced(self):
        customer = make_customer(name="Ali")
        assert render_template("{Name} {Name}", customer) == "Ali Ali"

    def test_unknown_placeholders_and_case_are_left_alone(self):
        customer = make_customer(name="Ali")
        assert render_template("{name} {Nickname} {Name}", customer) == "{name} {Nickname} Ali"

    def test_values_are_not_rescanned(self):
        customer = make_customer(name="{SaveName}", save_name="X")
        assert render_template("{Name}", customer) == "{SaveName}"

    def test_template_without_placeholders_is_unchanged(self):
        assert render_template("Happy birthday!", make_customer()) == "Happy birthday!"
