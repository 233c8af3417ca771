import pytest

from citizenship_coach.services.classifier import KeywordDomainClassifier


@pytest.fixture
def classifier():
    return KeywordDomainClassifier()


@pytest.mark.parametrize("text", [
    "What is the Constitution?",
    "How many senators are in Congress?",
    "hiến pháp là gì?",
    "¿Quién fue el primer presidente?",
    "Tell me about the Bill of Rights",
])
def test_in_domain(classifier, text):
    assert classifier.is_in_domain(text)


@pytest.mark.parametrize("text", [
    "how do I cook pasta",
    "what is the weather like",
])
def test_out_of_domain(classifier, text):
    assert not classifier.is_in_domain(text)


@pytest.mark.parametrize("text, expected", [
    ("who is the current president?", True),
    ("Who is the Vice President now?", True),
    ("Is Newsom still governor?", True),
    ("What does the President do?", False),
    ("How many senators are there?", False),
])
def test_current_officials(classifier, text, expected):
    assert classifier.is_about_current_officials(text) is expected
