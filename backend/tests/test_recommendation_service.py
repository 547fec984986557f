from types import SimpleNamespace

import httpx
import openai
import pytest

from gamelogd.preferences.errors import ConfigError, UpstreamError
from gamelogd.preferences.models import RatedGame
from gamelogd.web.services.recommendation_service import (
    GeneratedGame,
    GeneratedRecommendations,
    OpenAIRecommendationGenerator,
    build_prompt,
    describe_ratings,
)

RATED = [
    RatedGame(id="1", title="Hades", rating=5),
    RatedGame(id="2", title="Celeste", rating=5),
    RatedGame(id="3", title="Anthem", rating=1),
    RatedGame(id="4", title="Stardew Valley", rating=3.5),
]


class FakeCompletions:
    def __init__(self, parsed=None, error=None):
        self.parsed = parsed
        self.error = error
        self.requests = []

    def parse(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(parsed=self.parsed, refusal=None if self.parsed else "I can't help with that")
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def test_describe_ratings_groups_titles_highest_first():
    assert describe_ratings(RATED) == [
        "5-star games (absolutely loved): Hades, Celeste",
        "3.5-star games (liked quite a bit): Stardew Valley",
        "1-star games (disliked): Anthem",
    ]


def test_build_prompt_mentions_count_and_ratings():
    prompt = build_prompt(RATED, 7)
    assert "please recommend 7 video games" in prompt
    assert "5-star games (absolutely loved): Hades, Celeste" in prompt
    assert "Assign a match score (0-100)" in prompt


def test_generate_parses_structured_output():
    completions = FakeCompletions(parsed=GeneratedRecommendations(recommendations=[
        GeneratedGame(id="dead-cells", title="Dead Cells", explanation="Fast roguelite like Hades", match_score=92),
        GeneratedGame(id="ori", title="Ori and the Blind Forest", explanation="Precise platforming", match_score=85.5),
    ]))
    generator = OpenAIRecommendationGenerator(model="gpt-4o-mini", client=fake_client(completions))

    recommendations = generator.generate(RATED, 2)

    assert [(r.id, r.title, r.match_score) for r in recommendations] == [
        ("dead-cells", "Dead Cells", 92.0),
        ("ori", "Ori and the Blind Forest", 85.5),
    ]
    assert recommendations[0].explanation == "Fast roguelite like Hades"

    request = completions.requests[0]
    assert request["model"] == "gpt-4o-mini"
    assert request["response_format"] is GeneratedRecommendations
    assert "please recommend 2 video games" in request["messages"][-1]["content"]


def test_generated_game_accepts_camel_case_json():
    game = GeneratedGame.model_validate_json(
        '{"id": "x", "title": "X", "explanation": "because", "matchScore": 70}'
    )
    assert game.match_score == 70


def test_missing_api_key_raises_config_error():
    generator = OpenAIRecommendationGenerator(api_key=None)
    assert generator.is_configured is False
    with pytest.raises(ConfigError):
        generator.generate(RATED, 5)


def test_api_error_becomes_upstream_error():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    completions = FakeCompletions(error=openai.APIConnectionError(request=request))
    generator = OpenAIRecommendationGenerator(client=fake_client(completions))

    with pytest.raises(UpstreamError) as excinfo:
        generator.generate(RATED, 5)
    assert "try again" in excinfo.value.message


def test_refusal_becomes_upstream_error():
    generator = OpenAIRecommendationGenerator(client=fake_client(FakeCompletions(parsed=None)))
    with pytest.raises(UpstreamError):
        generator.generate(RATED, 5)
