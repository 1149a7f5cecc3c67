'''
testing reference generators and post-login navigation
'''
import re

from tutor_hub_backend.core.references import ticket_reference, invoice_number, transaction_id, slugify
from tutor_hub_backend.core.navigation import dashboard_path, profile_setup_path, redirect_path_for


def test_ticket_reference_format():
    assert re.fullmatch(r"TKT-[A-Z0-9]{8}", ticket_reference())


def test_invoice_number_format():
    assert re.fullmatch(r"INV-[0-9A-F]{12}", invoice_number())


def test_transaction_id_prefix():
    assert re.fullmatch(r"PAY-[0-9A-F]{16}", transaction_id("PAY"))


def test_slugify():
    assert slugify("Algèbre I") == "algebre-i"
    assert slugify("  Intro to  Python!  ") == "intro-to-python"
    assert slugify("!!!") == "course"


def test_dashboard_paths():
    assert dashboard_path("parent") == "/parents/dashboard"
    assert dashboard_path("admin") == "/admin/dashboard"


def test_admins_have_no_profile_setup():
    assert profile_setup_path("admin") == "/admin/dashboard"


def test_redirect_path_for_incomplete_profile():
    assert redirect_path_for("teacher", False) == "/teachers/profile-setup"
    assert redirect_path_for("teacher", True) == "/teachers/dashboard"
