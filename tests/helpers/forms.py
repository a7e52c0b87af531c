"""Valid field sets for every form type, relative to a given day."""

from datetime import date, timedelta

PHQ9_MODERATE = {str(i): "1" for i in range(9)} | {"0": "2", "1": "2", "2": "2"}  # total 12


def demographics(today: date | None = None) -> dict:
    today = today or date.today()
    return {
        "fullLegalName": "Mary Ann Smith",
        "date": (today + timedelta(days=7)).isoformat(),
        "dob": "1985-04-12",
        "age": "41",
        "gender": "Female",
        "phone": "(850) 555-0134",
        "email": "mary.smith@example.com",
        "address": "123 Palm Ave",
        "cityStateZip": "Pensacola, FL 32501",
        "activeDutyServiceMember": "No",
    }


def medical_history() -> dict:
    return {
        "medicalConditions": {"ANXIETY": True, "HEADACHE": True, "ASTHMA": False},
        "suicidalThoughts": "No",
        "attempts": "No",
        "allergies": "Penicillin",
        "familyHistory": "None",
        "signature": "Mary Smith",
    }


def pre_cert_med_list() -> dict:
    return {
        "name": "Mary Smith",
        "dateOfBirth": "1985-04-12",
        "medications": {
            "SSRI": {
                "Sertraline (Zoloft)": {
                    "selected": True,
                    "dosage": "50 mg",
                    "startDate": "2024-01-10",
                    "endDate": "2024-06-01",
                    "reasonForDiscontinuing": "Side effects",
                },
                "Fluoxetine (Prozac)": False,
            },
            "SNRI": {"Duloxetine (Cymbalta)": True},
        },
    }


def phq9() -> dict:
    return {"responses": dict(PHQ9_MODERATE)}


def bdi() -> dict:
    responses = {str(i): "0" for i in range(21)}
    responses["15"] = "2b"
    responses["17"] = "1a"
    return {"responses": responses}


def contact(today: date | None = None) -> dict:
    today = today or date.today()
    return {
        "name": "Jordan Lee",
        "email": "jordan@example.com",
        "date": (today + timedelta(days=3)).isoformat(),
        "consultationType": "Home",
        "message": "I would like to learn more about TMS therapy.",
    }
