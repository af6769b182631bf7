"""Tests for token and cost estimation."""

from monodoc.llm.token_estimator import DEFAULT_COST_PER_TOKEN, LiteLLMTokenEstimator, TokenEstimator


class TestLiteLLMTokenEstimator:
    def test_satisfies_protocol(self):
        assert isinstance(LiteLLMTokenEstimator(), TokenEstimator)

    def test_estimate_passes_model_and_messages(self, mocker):
        counter = mocker.patch("litellm.token_counter", return_value=42)
        messages = [{"role": "user", "content": "Document this"}]

        assert LiteLLMTokenEstimator().estimate(messages, model="gpt-4o") == 42
        counter.assert_called_once_with(model="gpt-4o", messages=messages)

    def test_estimate_falls_back_to_chars(self, mocker):
        mocker.patch("litellm.token_counter", side_effect=Exception("tokenizer not found"))

        result = LiteLLMTokenEstimator().estimate_text("x" * 40, model="unknown-model")

        assert result == 10

    def test_estimate_cost_uses_price_table(self, mocker):
        mocker.patch("litellm.cost_per_token", return_value=(0.25, 0.0))
        assert LiteLLMTokenEstimator().estimate_cost(1000, model="gpt-4o") == 0.25

    def test_unknown_price_uses_default_rate(self, mocker):
        mocker.patch("litellm.cost_per_token", side_effect=Exception("no price"))
        assert LiteLLMTokenEstimator().estimate_cost(100, model="mystery") == 100 * DEFAULT_COST_PER_TOKEN
