# emr_core/prescriptions/tests/test_allergies.py
from emr_core.prescriptions.allergies import check_allergies


def test_match_is_case_insensitive_substring():
    assert check_allergies(["penicillin"], ["Penicillin V Potassium"]) == [
        "Patient is allergic to penicillin (matches penicillin v potassium)."
    ]


def test_match_works_in_both_directions():
    warnings = check_allergies(["Amoxicillin/Clavulanate"], ["amoxicillin"])
    assert len(warnings) == 1


def test_one_warning_per_matching_allergy():
    warnings = check_allergies(["Sulfa", "Aspirin", "Latex"], ["Aspirin", "", None, "Sulfamethoxazole"])
    assert len(warnings) == 2
    assert all("Latex" not in w for w in warnings)


def test_no_allergies_or_names_gives_no_warnings():
    assert check_allergies([], ["Ibuprofen"]) == []
    assert check_allergies(["Ibuprofen"], [None, "  "]) == []
