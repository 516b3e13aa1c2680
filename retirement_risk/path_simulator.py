"""Single-path household simulation.

A :class:`PathSimulator` combines the market return, mortality and
long-term-care models with the contribution scheduler and the withdrawal
engine, and runs one household path year by year from the current age until
both people have died or the planning horizon is passed.

Each year:

1. draw the year's asset returns in the current market regime;
2. compute living and healthcare costs, with survivor reductions when one
   spouse has died;
3. collect guaranteed income, including survivor benefits;
4. add out-of-pocket long-term-care costs and insurance premiums;
5. let the withdrawal engine contribute, withdraw and apply returns;
6. draw each living person's survival into the next year.

When both people die before the horizon and the household has a legacy
goal, the remaining balance is projected to the horizon at the expected
portfolio return in closed form instead of simulating the empty years.
"""

from dataclasses import dataclass, field
import logging
from typing import List, Optional, Sequence

import numpy as np

from .config.household import HouseholdParameters
from .config.models import ModelConfig
from .contributions import ContributionScheduler, ContributionSplit
from .ltc import (
    LTCEpisode,
    LTCInsuranceBenefit,
    LTCShockModel,
    SimpleLTCShockModel,
    create_ltc_insurance,
)
from .market_returns import AssetReturns, MarketReturnModel, create_return_model
from .mortality import MortalityModel, create_mortality_model
from .tax_engine import FlatRateTaxEngine, TaxEngine
from .withdrawal import WithdrawalEngine, WithdrawalPhase, YearCashFlows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class YearRecord:
    """State of one path at the end of one simulated year."""

    year: int
    year_index: int
    age: int
    spouse_age: Optional[int]
    market_regime: str
    phase: WithdrawalPhase
    portfolio_balance: float
    withdrawal: float
    guaranteed_income: float
    tax_paid: float
    income_tax: float
    ltc_cost: float
    alive_self: bool
    alive_spouse: bool
    depleted: bool


@dataclass
class SimulationPath:
    """Outcome of one simulated household path.

    Attributes:
        records: One record per simulated year, in order.
        depletion_year: Zero-based year the portfolio ran out, if it did.
        terminal_balance: Nominal balance at the end of the path, projected to
            the horizon when the closed-form legacy valuation was used.
        terminal_balance_real: ``terminal_balance`` in today's dollars.
        success: Whether the path met its goal.
        projected_years: Years covered by the closed-form projection.
    """

    records: List[YearRecord] = field(default_factory=list)
    depletion_year: Optional[int] = None
    terminal_balance: float = 0.0
    terminal_balance_real: float = 0.0
    success: bool = False
    projected_years: int = 0

    @property
    def balances(self) -> np.ndarray:
        """End-of-year portfolio balances."""
        return np.array([r.portfolio_balance for r in self.records], dtype=float)

    @property
    def depleted(self) -> bool:
        """Whether the portfolio ran out."""
        return self.depletion_year is not None


class PathSimulator:
    """Simulates household paths for one parameter set.

    Collaborators default to the models described by ``models``; any of them
    can be injected to swap a strategy.

    Args:
        household: Household parameters.
        models: Sub-model configuration.
        tax_engine: Tax collaborator; defaults to the flat-rate engine.
        return_model: Market return model.
        mortality_model: Survival model.
        ltc_model: Long-term-care episode model.
        ltc_insurance: Insurance hook applied to care costs.
        contribution_scheduler: Contribution limit logic.

    Examples:
        Running one path::

            simulator = PathSimulator(household)
            path = simulator.simulate(np.random.default_rng(42))
            path.success, path.terminal_balance
    """

    def __init__(
        self,
        household: HouseholdParameters,
        models: Optional[ModelConfig] = None,
        tax_engine: Optional[TaxEngine] = None,
        return_model: Optional[MarketReturnModel] = None,
        mortality_model: Optional[MortalityModel] = None,
        ltc_model: Optional[LTCShockModel] = None,
        ltc_insurance: Optional[LTCInsuranceBenefit] = None,
        contribution_scheduler: Optional[ContributionScheduler] = None,
    ):
        self.household = household
        self.models = models or ModelConfig()
        self.tax_engine = tax_engine or FlatRateTaxEngine.from_config(self.models.tax)
        self.return_model = return_model or create_return_model(
            self.models.return_model, household.market, self.models.market_regimes
        )
        self.mortality_model = mortality_model or create_mortality_model(
            household.stochastic_mortality, self.models.mortality
        )
        self.ltc_model = ltc_model or SimpleLTCShockModel(self.models.ltc)
        self.ltc_insurance = ltc_insurance or create_ltc_insurance(
            household.has_ltc_insurance, self.models.ltc_insurance
        )
        self.contribution_scheduler = contribution_scheduler or ContributionScheduler(
            self.models.contribution_limits
        )

    def simulate(self, rng: np.random.Generator) -> SimulationPath:
        """Run one path.

        Args:
            rng: Generator owned by this path.

        Returns:
            SimulationPath with per-year records and the terminal outcome.
        """
        household = self.household
        market = household.market
        people = household.people
        start_age = household.primary.current_age
        horizon_years = household.horizon_years

        alive = [True] * len(people)
        state = self.return_model.initial_state(rng)
        episodes: List[Optional[LTCEpisode]] = [None] * len(people)
        if household.model_ltc:
            episodes = [self.ltc_model.maybe_trigger_episode(p, p.current_age, rng) for p in people]
        engine = WithdrawalEngine(household, self.tax_engine, self.models.guardrails)

        path = SimulationPath()
        inflation_index = 1.0
        healthcare_index = 1.0
        years_run = 0

        for year_index in range(horizon_years):
            if not any(alive):
                break
            age = start_age + year_index
            ages = [p.current_age + year_index for p in people]
            calendar_year = household.start_year + year_index

            stocks, bonds, cash, next_state = self.return_model.next_return(state, rng)
            returns = AssetReturns(stocks, bonds, cash, state.regime)

            survivor = household.is_couple and sum(alive) == 1
            living = household.annual_expenses * inflation_index
            healthcare = household.annual_healthcare_cost * healthcare_index
            if survivor:
                living *= household.survivor_expense_factor
                healthcare *= household.survivor_healthcare_factor

            income = self.guaranteed_income(ages, alive, inflation_index)
            ltc_cost = self.ltc_out_of_pocket(episodes, ages, alive, year_index)

            contributions = ContributionSplit()
            for person, person_age, is_alive in zip(people, ages, alive):
                if is_alive:
                    contributions = contributions + self.contribution_scheduler.contributions_for(
                        person, person_age, calendar_year, inflation_index
                    )

            outcome = engine.step(
                year_index,
                age,
                YearCashFlows(living, healthcare, ltc_cost, income, contributions, returns),
                calendar_year,
                household.horizon_age - age,
            )

            path.records.append(
                YearRecord(
                    year=calendar_year,
                    year_index=year_index,
                    age=age,
                    spouse_age=ages[1] if household.is_couple else None,
                    market_regime=state.regime,
                    phase=engine.phase,
                    portfolio_balance=engine.balance,
                    withdrawal=outcome.withdrawal,
                    guaranteed_income=income,
                    tax_paid=outcome.tax_paid,
                    income_tax=outcome.income_tax,
                    ltc_cost=ltc_cost,
                    alive_self=alive[0],
                    alive_spouse=alive[1] if household.is_couple else False,
                    depleted=engine.phase is WithdrawalPhase.DEPLETED,
                )
            )

            alive = [
                is_alive and self.mortality_model.survives_year(person, person_age, rng)
                for person, person_age, is_alive in zip(people, ages, alive)
            ]
            inflation_index *= 1.0 + market.inflation
            healthcare_index *= 1.0 + market.healthcare_inflation
            state = next_state
            years_run = year_index + 1

        terminal = engine.balance
        remaining = horizon_years - years_run
        if household.legacy_goal > 0 and remaining > 0 and terminal > 0:
            growth = 1.0 + self.return_model.expected_portfolio_return(household.allocation)
            terminal *= growth**remaining
            inflation_index *= (1.0 + market.inflation) ** remaining
            path.projected_years = remaining

        path.depletion_year = engine.depletion_year
        path.terminal_balance = terminal
        path.terminal_balance_real = terminal / inflation_index if inflation_index > 0 else terminal
        if household.legacy_goal > 0:
            path.success = path.terminal_balance_real >= household.legacy_goal
        else:
            path.success = terminal > 0
        return path

    def simulate_many(self, rngs: Sequence[np.random.Generator]) -> List[SimulationPath]:
        """Run one path per generator."""
        return [self.simulate(rng) for rng in rngs]

    def guaranteed_income(
        self, ages: List[int], alive: List[bool], inflation_index: float
    ) -> float:
        """Household guaranteed income for one year.

        A surviving spouse keeps the higher of the two Social Security
        benefits and receives the survivor share of the deceased's pensions
        and annuities. Part-time income ends with its owner.
        """
        people = self.household.people
        total = 0.0
        for person, age, is_alive in zip(people, ages, alive):
            if is_alive:
                total += sum(s.amount(age, inflation_index) for s in person.income_streams)

        if self.household.is_couple and sum(alive) == 1:
            survivor = 0 if alive[0] else 1
            deceased = 1 - survivor
            own_ss = people[survivor].social_security_amount(ages[survivor], inflation_index)
            deceased_ss = people[deceased].social_security_amount(ages[deceased], inflation_index)
            total += max(0.0, deceased_ss - own_ss)
            total += sum(
                s.amount(ages[deceased], inflation_index) * s.survivor_fraction
                for s in people[deceased].income_streams
                if s.kind in ("pension", "annuity")
            )
        return total

    def ltc_out_of_pocket(
        self,
        episodes: List[Optional[LTCEpisode]],
        ages: List[int],
        alive: List[bool],
        year_index: int,
    ) -> float:
        """Care costs net of insurance benefits, plus premiums."""
        if not self.household.model_ltc:
            return 0.0
        total = 0.0
        for episode, age, is_alive in zip(episodes, ages, alive):
            if not is_alive:
                continue
            on_claim = episode is not None and age >= episode.onset_age
            total += self.ltc_insurance.premium(age, year_index, on_claim)
            if episode is None:
                continue
            cost = episode.cost_in_year(age, year_index)
            if cost > 0:
                total += cost - self.ltc_insurance.benefit(episode, age, year_index, cost)
        return total
