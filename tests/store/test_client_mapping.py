from surveybot.store.models import QuestionProgress, Question, client_from_row


def test_database_row_shape():
    client = client_from_row({
        "numero_whatsapp": "0612345678",
        "prenom": "Sara",
        "nom": "Alaoui",
        "survey_id": 42,
        "survey_link": "https://survey.example/42",
        "statut": "Pending",
    })
    assert client.contact_id == "212612345678"
    assert client.phone == "0612345678"
    assert (client.first_name, client.last_name) == ("Sara", "Alaoui")
    assert client.survey_id == "42"
    assert client.survey_link == "https://survey.example/42"
    assert client.status == "Pending"


def test_backoffice_shape():
    client = client_from_row({
        "numeroWhatsapp": "+212 612 345 678",
        "firstName": "Omar",
        "name": "Benali",
        "surveyId": "9",
        "link": "https://survey.example/9",
    })
    assert client.contact_id == "212612345678"
    assert client.first_name == "Omar"
    assert client.last_name == "Benali"
    assert client.survey_id == "9"
    assert client.status is None


def test_empty_values_fall_through_to_next_alias():
    client = client_from_row({"numero_whatsapp": "", "numero": "0611111111", "prenom": None, "firstName": "Lina"})
    assert client.contact_id == "212611111111"
    assert client.first_name == "Lina"


def test_missing_phone_gives_empty_key():
    client = client_from_row({"prenom": "Nobody"})
    assert client.contact_id == ""
    assert client.survey_id is None


def test_progress_cursor_properties():
    progress = QuestionProgress(questions=[Question("1", "a?")])
    assert progress.current == Question("1", "a?")
    progress.current_index = 1
    assert progress.exhausted
    assert progress.current is None
