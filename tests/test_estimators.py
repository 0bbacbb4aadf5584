"""Tests for catengine.estimators point estimates and information criteria."""

from __future__ import annotations

import math

import numpy as np
import pytest

from catengine import (
    EAPEstimator,
    Hypothetical,
    MAPEstimator,
    MLEEstimator,
    NormalPrior,
    NumericDomainError,
    QuestionSet,
    create_estimator,
)
from catengine.models import GradedResponse


def _with_recorded(questions: QuestionSet, item: int, answer: int) -> QuestionSet:
    clone = questions.copy()
    clone.record_answer(item, answer)
    return clone


class TestOverlayAgreement:
    @pytest.mark.parametrize("theta", [-1.2, 0.0, 0.9])
    def test_overlay_matches_recorded_answer(
        self, answered_questions: QuestionSet, theta: float
    ) -> None:
        item = 2
        for answer in answered_questions.categories(item):
            overlay = MAPEstimator(answered_questions)
            recorded = MAPEstimator(_with_recorded(answered_questions, item, answer))
            hyp = Hypothetical(item, answer)

            assert overlay.likelihood(theta, hyp) == pytest.approx(
                recorded.likelihood(theta)
            )
            for use_prior in (False, True):
                assert overlay.d1ll(theta, use_prior, hyp) == pytest.approx(
                    recorded.d1ll(theta, use_prior)
                )
                assert overlay.d2ll(theta, use_prior, hyp) == pytest.approx(
                    recorded.d2ll(theta, use_prior)
                )
            assert overlay.test_information(theta, hyp) == pytest.approx(
                recorded.test_information(theta)
            )

    def test_overlay_leaves_questions_untouched(
        self, answered_questions: QuestionSet
    ) -> None:
        before = (
            list(answered_questions.answers),
            list(answered_questions.applicable_rows),
            list(answered_questions.nonapplicable_rows),
        )
        estimator = MAPEstimator(answered_questions)
        estimator.expected_pv(3)
        estimator.expected_obs_inf(2)
        after = (
            answered_questions.answers,
            answered_questions.applicable_rows,
            answered_questions.nonapplicable_rows,
        )
        assert before == after


class TestLikelihood:
    def test_empty_likelihood_is_one(self, any_questions: QuestionSet) -> None:
        estimator = MAPEstimator(any_questions)
        assert estimator.likelihood(0.3) == 1.0
        assert estimator.log_likelihood(0.3) == 0.0

    def test_binary_likelihood_product(self, ltm_questions: QuestionSet) -> None:
        ltm_questions.record_answer(0, 1)
        ltm_questions.record_answer(1, 0)
        estimator = MAPEstimator(ltm_questions)
        p0 = estimator.probability(0.4, 0)[0]
        p1 = estimator.probability(0.4, 1)[0]
        assert estimator.likelihood(0.4) == pytest.approx(p0 * (1.0 - p1))

    def test_prior_only_derivatives(self, any_questions: QuestionSet) -> None:
        estimator = MAPEstimator(any_questions, prior=NormalPrior(0.5, 2.0))
        for use_prior in (False, True):
            assert estimator.d1ll(1.5, use_prior) == pytest.approx(-0.25)
            assert estimator.d2ll(1.5, use_prior) == pytest.approx(-0.25)

    def test_d1ll_matches_finite_difference(
        self, answered_questions: QuestionSet
    ) -> None:
        estimator = MAPEstimator(answered_questions)
        h = 1e-5
        expected = (
            estimator.log_likelihood(0.3 + h) - estimator.log_likelihood(0.3 - h)
        ) / (2.0 * h)
        assert estimator.d1ll(0.3) == pytest.approx(expected, rel=1e-5, abs=1e-7)


class TestItemInformation:
    def test_obs_inf_uses_recorded_answer(self, ltm_questions: QuestionSet) -> None:
        ltm_questions.record_answer(1, 1)
        estimator = MAPEstimator(ltm_questions)
        assert estimator.obs_inf(0.2, 1) == estimator.obs_inf(0.2, 1, 1)

    def test_obs_inf_requires_answer(self, ltm_questions: QuestionSet) -> None:
        with pytest.raises(ValueError, match="no recorded answer"):
            MAPEstimator(ltm_questions).obs_inf(0.0, 2)

    def test_obs_inf_rejects_invalid_category(self, grm_questions: QuestionSet) -> None:
        with pytest.raises(ValueError, match="not a valid category"):
            MAPEstimator(grm_questions).obs_inf(0.0, 0, 9)

    def test_out_of_range_item(self, ltm_questions: QuestionSet) -> None:
        estimator = MAPEstimator(ltm_questions)
        with pytest.raises(IndexError):
            estimator.fisher_inf(0.0, 5)
        with pytest.raises(IndexError):
            estimator.probability(0.0, -1)
        with pytest.raises(IndexError):
            estimator.expected_pv(17)

    def test_test_information_sums_answered_items(
        self, answered_questions: QuestionSet
    ) -> None:
        estimator = MAPEstimator(answered_questions)
        expected = estimator.fisher_inf(0.1, 0) + estimator.fisher_inf(0.1, 1)
        assert estimator.test_information(0.1) == pytest.approx(expected)


class TestMAPEstimator:
    def test_no_answers_returns_prior_mean(self, any_questions: QuestionSet) -> None:
        estimator = MAPEstimator(any_questions, prior=NormalPrior(0.7, 1.3))
        assert estimator.estimate_theta() == pytest.approx(0.7, abs=1e-6)
        assert estimator.estimate_se() == pytest.approx(1.3, rel=1e-6)

    def test_correct_answer_raises_estimate(self, ltm_questions: QuestionSet) -> None:
        start = MAPEstimator(ltm_questions).estimate_theta()
        ltm_questions.record_answer(0, 1)
        assert MAPEstimator(ltm_questions).estimate_theta() > start

    def test_estimate_is_root_of_penalized_score(
        self, answered_questions: QuestionSet
    ) -> None:
        estimator = MAPEstimator(answered_questions)
        theta = estimator.estimate_theta()
        assert estimator.d1ll(theta, use_prior=True) == pytest.approx(0.0, abs=1e-6)

    def test_se_shrinks_with_answers(self, answered_questions: QuestionSet) -> None:
        estimator = MAPEstimator(answered_questions)
        assert 0.0 < estimator.estimate_se() < 1.0


class TestMLEEstimator:
    def test_all_correct_has_no_root(self, ltm_questions: QuestionSet) -> None:
        ltm_questions.record_answer(0, 1)
        with pytest.raises(NumericDomainError):
            MLEEstimator(ltm_questions).estimate_theta()

    def test_mixed_answers(self, ltm_questions: QuestionSet) -> None:
        ltm_questions.record_answer(0, 1)
        ltm_questions.record_answer(1, 0)
        estimator = MLEEstimator(ltm_questions)
        theta = estimator.estimate_theta()
        assert estimator.d1ll(theta) == pytest.approx(0.0, abs=1e-6)
        info = estimator.test_information(theta)
        assert estimator.estimate_se() == pytest.approx(1.0 / math.sqrt(info))

    def test_no_answers_has_infinite_se(self, ltm_questions: QuestionSet) -> None:
        estimator = MLEEstimator(ltm_questions)
        assert estimator.estimate_theta() == pytest.approx(0.0, abs=1e-6)
        assert estimator.estimate_se() == math.inf


class TestEAPEstimator:
    def test_no_answers_returns_prior_moments(self, ltm_questions: QuestionSet) -> None:
        estimator = EAPEstimator(ltm_questions, prior=NormalPrior(0.5, 1.0))
        assert estimator.estimate_theta() == pytest.approx(0.5, abs=1e-3)
        assert estimator.estimate_se() == pytest.approx(1.0, abs=1e-3)

    def test_incorrect_answer_lowers_estimate(self, tpm_questions: QuestionSet) -> None:
        tpm_questions.record_answer(1, 0)
        assert EAPEstimator(tpm_questions).estimate_theta() < 0.0

    def test_close_to_map_with_answers(self, answered_questions: QuestionSet) -> None:
        eap = EAPEstimator(answered_questions).estimate_theta()
        map_ = MAPEstimator(answered_questions).estimate_theta()
        assert abs(eap - map_) < 0.5


class TestCriteria:
    def test_window_criteria_are_zero_without_information(
        self, any_questions: QuestionSet
    ) -> None:
        estimator = MAPEstimator(any_questions)
        assert estimator.expected_kl(0) == 0.0
        assert estimator.fii(1) == 0.0

    def test_window_criteria_positive_with_answers(
        self, answered_questions: QuestionSet
    ) -> None:
        estimator = MAPEstimator(answered_questions)
        assert estimator.fii(2) > 0.0
        assert estimator.expected_kl(2) > 0.0

    def test_fii_is_window_integral(self, answered_questions: QuestionSet) -> None:
        estimator = MAPEstimator(answered_questions)
        theta = estimator.estimate_theta()
        delta = answered_questions.z[0] * math.sqrt(estimator.test_information(theta))
        expected = estimator.integrator.integrate(
            lambda t: estimator.fisher_inf(t, 3),
            estimator.subintervals,
            theta - delta,
            theta + delta,
        )
        assert estimator.fii(3) == pytest.approx(expected)

    def test_weighted_criteria_positive(self, answered_questions: QuestionSet) -> None:
        estimator = MAPEstimator(answered_questions)
        for criterion in (
            estimator.lwi,
            estimator.pwi,
            estimator.likelihood_kl,
            estimator.posterior_kl,
        ):
            assert criterion(2) > 0.0

    def test_weighted_information_matches_quadrature(
        self, answered_questions: QuestionSet
    ) -> None:
        estimator = MAPEstimator(answered_questions, prior=NormalPrior(0.3, 1.4))
        lower, upper = answered_questions.lower_bound, answered_questions.upper_bound

        def integrate(f):
            return estimator.integrator.integrate(f, estimator.subintervals, lower, upper)

        item = 3
        lwi = integrate(lambda t: estimator.likelihood(t) * estimator.fisher_inf(t, item))
        pwi = integrate(
            lambda t: estimator.likelihood(t)
            * estimator.prior.density(t)
            * estimator.fisher_inf(t, item)
        )
        assert estimator.lwi(item) == pytest.approx(lwi, rel=1e-12)
        assert estimator.pwi(item) == pytest.approx(pwi, rel=1e-12)
        assert estimator.pwi(item) != pytest.approx(estimator.lwi(item))

    def test_weighted_kl_matches_quadrature(self, answered_questions: QuestionSet) -> None:
        estimator = MAPEstimator(answered_questions, prior=NormalPrior(-0.2, 0.8))
        theta = estimator.estimate_theta()
        lower, upper = answered_questions.lower_bound, answered_questions.upper_bound
        item = 2

        def integrate(f):
            return estimator.integrator.integrate(f, estimator.subintervals, lower, upper)

        lkl = integrate(lambda t: estimator.likelihood(t) * estimator.kl(t, item, theta))
        pkl = integrate(
            lambda t: estimator.prior.density(t)
            * estimator.likelihood(t)
            * estimator.kl(t, item, theta)
        )
        assert estimator.likelihood_kl(item) == pytest.approx(lkl, rel=1e-12)
        assert estimator.posterior_kl(item) == pytest.approx(pkl, rel=1e-12)

    def test_binary_expected_pv_formula(self, ltm_questions: QuestionSet) -> None:
        ltm_questions.record_answer(0, 1)
        ltm_questions.record_answer(1, 0)
        estimator = MAPEstimator(ltm_questions)
        item = 2
        p = estimator.probability(estimator.estimate_theta(), item)[0]
        se_correct = estimator.estimate_se(Hypothetical(item, 1))
        se_incorrect = estimator.estimate_se(Hypothetical(item, 0))
        expected = p * se_correct**2 + (1.0 - p) * se_incorrect**2
        assert estimator.expected_pv(item) == pytest.approx(expected, rel=1e-12)

    def test_grm_expected_obs_inf_formula(self, grm_questions: QuestionSet) -> None:
        grm_questions.record_answer(0, 2)
        grm_questions.record_answer(1, 3)
        estimator = MAPEstimator(grm_questions)
        item = 2
        cdf = GradedResponse().cumulative(
            estimator.estimate_theta(), grm_questions.item(item)
        )
        masses = np.diff(cdf)
        expected = 0.0
        for answer in grm_questions.categories(item):
            theta_k = estimator.estimate_theta(Hypothetical(item, answer))
            expected += masses[answer - 1] * estimator.obs_inf(theta_k, item, answer)
        assert estimator.expected_obs_inf(item) == pytest.approx(expected, rel=1e-12)

    def test_expectations_are_idempotent(self, answered_questions: QuestionSet) -> None:
        estimator = MAPEstimator(answered_questions)
        assert estimator.expected_pv(2) == estimator.expected_pv(2)
        assert estimator.expected_obs_inf(3) == estimator.expected_obs_inf(3)

    def test_expected_pv_below_prior_variance(
        self, answered_questions: QuestionSet
    ) -> None:
        estimator = MAPEstimator(answered_questions)
        assert 0.0 < estimator.expected_pv(2) < 1.0


class TestCreateEstimator:
    @pytest.mark.parametrize(
        ("method", "cls"),
        [("MAP", MAPEstimator), ("mle", MLEEstimator), (" eap ", EAPEstimator)],
    )
    def test_known_methods(self, ltm_questions, method: str, cls) -> None:
        estimator = create_estimator(method, ltm_questions, prior=2.0)
        assert isinstance(estimator, cls)
        assert estimator.prior.param1 == 2.0

    def test_unknown_method(self, ltm_questions: QuestionSet) -> None:
        with pytest.raises(ValueError, match="Unknown estimation method"):
            create_estimator("WLE", ltm_questions)

    def test_requires_question_set(self) -> None:
        with pytest.raises(TypeError, match="questions must be a QuestionSet"):
            MAPEstimator([1, 2, 3])

    def test_for_questions_keeps_configuration(
        self, ltm_questions: QuestionSet
    ) -> None:
        estimator = MAPEstimator(ltm_questions, prior=NormalPrior(1.0, 0.5))
        other = ltm_questions.copy()
        clone = estimator.for_questions(other)
        assert clone.questions is other
        assert clone.prior is estimator.prior
        assert estimator.questions is ltm_questions
