from models.application import University
from services.university_browser import available_countries, filter_universities

UNIVERSITIES = [
    University.model_validate({
        "id": 1, "universityName": "University of Leeds", "country": "UK",
        "programs": [{"id": 10, "name": "MSc Data Science"}],
    }),
    University.model_validate({
        "id": 2, "universityName": "University of Toronto", "country": "Canada",
        "programs": [{"id": 20, "name": "MEng Electrical"}],
    }),
    University.model_validate({
        "id": 3, "universityName": "Imperial College", "country": "UK",
        "programs": [{"id": 30, "name": "MSc Finance"}],
    }),
]


def _ids(items):
    return [u.id for u in items]


def test_no_filters_returns_all():
    assert _ids(filter_universities(UNIVERSITIES)) == [1, 2, 3]


def test_search_matches_name_country_and_program():
    assert _ids(filter_universities(UNIVERSITIES, search="toronto")) == [2]
    assert _ids(filter_universities(UNIVERSITIES, search="canada")) == [2]
    assert _ids(filter_universities(UNIVERSITIES, search="data science")) == [1]


def test_country_filter_is_exact():
    assert _ids(filter_universities(UNIVERSITIES, country="UK")) == [1, 3]
    assert _ids(filter_universities(UNIVERSITIES, country="U")) == []


def test_search_and_country_combined():
    assert _ids(filter_universities(UNIVERSITIES, search="msc", country="UK")) == [1, 3]


def test_available_countries():
    assert available_countries(UNIVERSITIES) == ["Canada", "UK"]
