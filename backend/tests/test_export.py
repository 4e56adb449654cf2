import io, csv

from conftest import bearer


def _questionnaire_with_answers(client, make_questionnaire):
    qid, password, _ = make_questionnaire(title="Export Survey", questions=[
        {"id": "q1", "label": "Happy?", "type": "radio", "options": ["Yes", "No"]},
        {"id": "img", "label": "Pick one", "type": "image-select",
         "imageOptions": ["/a.png", "/b.png"], "imageLabels": ["A", "B"]},
        {"id": "q3", "label": "Say \"more\"", "type": "text"},
    ])
    client.post("/submissions", json={"questionnaireId": qid, "answers": {
        "q1": "Yes",
        "img": {"image": "/a.png", "reasons": ["Clarity", "Concise"], "customReason": "bold"},
        "q3": "a, b",
    }})
    client.post("/submissions", json={"questionnaireId": qid, "answers": {"q1": "No"}})
    return qid, password


def test_export_csv_after_submit(client, make_questionnaire):
    qid, password = _questionnaire_with_answers(client, make_questionnaire)

    assert client.get(f"/questionnaires/{qid}/export.csv").status_code == 401

    r = client.get(f"/questionnaires/{qid}/export.csv", headers=bearer(password))
    assert r.status_code == 200
    assert "text/csv" in r.headers.get("content-type", "")
    assert "Export_Survey_submissions.csv" in r.headers["content-disposition"]

    reader = csv.reader(io.StringIO(r.content.decode("utf-8")))
    header = next(reader)
    assert header == ["Submission #", "Submitted At", "Happy?", "Pick one", 'Say "more"']

    rows = list(reader)
    assert len(rows) == 2
    assert rows[0][0] == "1"
    assert rows[0][2:] == ["Yes", "Image: /a.png | Reasons: Clarity, Concise | Custom: bold", "a, b"]
    assert rows[1][2:] == ["No", "", ""]


def test_export_xls(client, make_questionnaire):
    qid, password = _questionnaire_with_answers(client, make_questionnaire)
    r = client.get(f"/questionnaires/{qid}/export.xls", headers=bearer(password))
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/vnd.ms-excel")
    text = r.content.decode("utf-8")
    assert text.startswith("\ufeff<table")
    assert "Image: /a.png | Reasons: Clarity, Concise | Custom: bold" in text


def test_export_without_submissions_has_header_only(client, make_questionnaire):
    qid, password, _ = make_questionnaire()
    r = client.get(f"/questionnaires/{qid}/export.csv", headers=bearer(password))
    lines = r.content.decode("utf-8").strip().splitlines()
    assert lines == ["Submission #,Submitted At,Happy?,Comments"]
