"""Tests for the long-term-care shock model and insurance hooks."""

import numpy as np
import pytest

from retirement_risk.config import LTCConfig, LTCInsuranceConfig, PersonProfile
from retirement_risk.ltc import (
    FixedBenefitPolicy,
    LTCEpisode,
    SelfPay,
    SimpleLTCShockModel,
    create_ltc_insurance,
)


def person(age=70, gender="female", life_expectancy=95):
    return PersonProfile(
        current_age=age, retirement_age=age, life_expectancy=life_expectancy, gender=gender
    )


class TestLTCEpisode:
    """Test episode bookkeeping."""

    def test_active_window(self):
        """Care is active from onset for the episode's duration."""
        episode = LTCEpisode(onset_age=80, duration_years=3, annual_cost=100_000)
        assert episode.end_age == 82
        assert not episode.is_active(79)
        assert episode.is_active(80) and episode.is_active(82)
        assert not episode.is_active(83)

    def test_cost_inflates(self):
        """Cost grows at the LTC inflation rate from today."""
        episode = LTCEpisode(80, 2, 100_000, cost_inflation=0.05)
        assert episode.cost_in_year(79, 9) == 0.0
        assert episode.cost_in_year(80, 10) == pytest.approx(100_000 * 1.05**10)


class TestSimpleLTCShockModel:
    """Test episode generation."""

    def test_never_when_probability_zero(self):
        """A zero lifetime probability never triggers care."""
        model = SimpleLTCShockModel(LTCConfig(lifetime_probability=0.0))
        rng = np.random.default_rng(0)
        assert all(model.maybe_trigger_episode(person(), 70, rng) is None for _ in range(200))

    def test_episode_fields_within_ranges(self):
        """Onset, duration and cost respect the configured ranges."""
        model = SimpleLTCShockModel(LTCConfig(lifetime_probability=1.0))
        rng = np.random.default_rng(1)
        for _ in range(500):
            episode = model.maybe_trigger_episode(person(), 70, rng)
            assert episode is not None
            assert 75 <= episode.onset_age <= 85
            assert episode.duration_years >= 1
            assert 70_800 <= episode.annual_cost <= 127_800

    def test_onset_not_before_current_age(self):
        """A person already inside the onset range starts care no earlier than today."""
        model = SimpleLTCShockModel(LTCConfig(lifetime_probability=1.0))
        rng = np.random.default_rng(2)
        onsets = {model.maybe_trigger_episode(person(82), 82, rng).onset_age for _ in range(300)}
        assert min(onsets) >= 82
        assert max(onsets) <= 85

    def test_no_episode_after_ceiling(self):
        """Episodes starting after the life-expectancy ceiling are dropped."""
        model = SimpleLTCShockModel(LTCConfig(lifetime_probability=1.0))
        rng = np.random.default_rng(3)
        short_lived = person(70, life_expectancy=74)
        assert all(model.maybe_trigger_episode(short_lived, 70, rng) is None for _ in range(100))

    def test_women_have_longer_episodes(self):
        """The gender multiplier lengthens female episodes on average."""
        model = SimpleLTCShockModel(LTCConfig(lifetime_probability=1.0))
        rng = np.random.default_rng(4)

        def mean_duration(gender):
            return np.mean(
                [
                    model.maybe_trigger_episode(person(gender=gender), 70, rng).duration_years
                    for _ in range(3_000)
                ]
            )

        assert model.expected_duration("male") == pytest.approx(2.55)
        assert model.expected_duration("female") == pytest.approx(3.45)
        assert mean_duration("female") > mean_duration("male")

    def test_fixed_draw_count(self):
        """The generator advances the same amount with or without an episode."""
        rng_a = np.random.default_rng(8)
        rng_b = np.random.default_rng(8)
        SimpleLTCShockModel(LTCConfig(lifetime_probability=0.0)).maybe_trigger_episode(
            person(), 70, rng_a
        )
        SimpleLTCShockModel(LTCConfig(lifetime_probability=1.0)).maybe_trigger_episode(
            person(), 70, rng_b
        )
        assert rng_a.random() == rng_b.random()


class TestInsurance:
    """Test the insurance hooks."""

    def test_self_pay(self):
        """Self-pay reimburses nothing and charges nothing."""
        policy = SelfPay()
        episode = LTCEpisode(80, 2, 100_000)
        assert policy.benefit(episode, 80, 0, 100_000) == 0.0
        assert policy.premium(70, 0, on_claim=False) == 0.0

    def test_fixed_benefit_total(self):
        """Benefits total benefit_years of daily benefit net of elimination."""
        policy = FixedBenefitPolicy(LTCInsuranceConfig(daily_benefit=200, elimination_days=90))
        episode = LTCEpisode(onset_age=80, duration_years=6, annual_cost=1_000_000)
        benefits = [policy.benefit(episode, 80 + k, k, 1_000_000) for k in range(6)]
        annual = 200 * 365

        assert benefits[0] == pytest.approx(annual * (1 - 90 / 365))
        assert benefits[1] == pytest.approx(annual)
        assert benefits[4] == 0.0
        assert sum(benefits) == pytest.approx(3 * annual)

    def test_benefit_capped_at_cost(self):
        """The policy never pays more than the year's cost."""
        policy = FixedBenefitPolicy(LTCInsuranceConfig(daily_benefit=500, elimination_days=0))
        episode = LTCEpisode(80, 2, 50_000)
        assert policy.benefit(episode, 81, 0, 50_000) == 50_000

    def test_premium_waived_on_claim(self):
        """Level premiums stop once a claim is open."""
        policy = FixedBenefitPolicy(LTCInsuranceConfig(annual_premium=2_500))
        assert policy.premium(70, 0, on_claim=False) == 2_500
        assert policy.premium(81, 11, on_claim=True) == 0.0

    def test_factory(self):
        """Insured households get the fixed-benefit policy."""
        assert isinstance(create_ltc_insurance(True), FixedBenefitPolicy)
        assert isinstance(create_ltc_insurance(False), SelfPay)
