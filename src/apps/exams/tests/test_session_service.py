# src/apps/exams/tests/test_session_service.py
"""
Session Service Tests

Tests for the attempt lifecycle: start, answer capture, submission.
"""

import json
import uuid
from datetime import timedelta
from unittest.mock import patch

import httpx
from django.test import TestCase
from django.utils import timezone

from shared.common.clients import CertificateServiceClient
from shared.common.exceptions import (
    AttemptLimitExceededError,
    InvalidStateError,
    NotFoundError,
    StoreUnavailableError,
)

from ..models import ExamAttempt, CompletionSource, QuestionType
from ..services import CertificateTrigger, ExamSessionService
from . import factories


class SessionTestCase(TestCase):
    """Common fixtures: an exam, its bank and a recording certificate service."""

    def setUp(self):
        """Set up test fixtures."""
        self.participant_id = str(uuid.uuid4())
        self.exam = factories.create_exam(max_attempts=2, passing_score=70)
        self.questions = factories.create_bank(self.exam, 5)
        self.certificate_requests = []
        self.install_certificate_service(status_code=201)

    def install_certificate_service(self, status_code):
        def handler(request):
            self.certificate_requests.append(json.loads(request.content))
            if status_code >= 400:
                return httpx.Response(status_code, json={'detail': 'unavailable'})
            return httpx.Response(status_code, json={'certificate_id': str(uuid.uuid4())})

        CertificateTrigger._client = CertificateServiceClient(transport=httpx.MockTransport(handler))

    def answer_all(self, attempt_id, correct):
        """Answer every question of the attempt; the first ``correct`` right."""
        attempt = ExamAttempt.objects.get(id=attempt_id)
        for index, question_id in enumerate(attempt.question_order):
            ExamSessionService.save_answer(
                attempt_id,
                self.participant_id,
                question_id,
                'B' if index < correct else 'A',
            )


class StartSessionTest(SessionTestCase):
    """Tests for ExamSessionService.start_session."""

    def test_start_session_freezes_presentation(self):
        """Test the attempt stores the drawn order and option mappings."""
        self.exam.questions_per_exam = 3
        self.exam.save()

        session = ExamSessionService.start_session(self.exam.id, self.participant_id)

        attempt = ExamAttempt.objects.get(id=session['attempt_id'])
        self.assertEqual(len(attempt.question_order), 3)
        self.assertEqual([q['id'] for q in session['questions']], attempt.question_order)
        for question_id in attempt.question_order:
            self.assertIn(question_id, attempt.option_orderings)
        self.assertIsNone(attempt.completed_at)
        self.assertEqual(session['total_points'], 3)

    def test_start_session_hides_correct_answers(self):
        """Test the client payload carries no correct answer."""
        session = ExamSessionService.start_session(self.exam.id, self.participant_id)

        for question in session['questions']:
            self.assertNotIn('correct_answer', question)
            self.assertEqual(
                sorted(option['letter'] for option in question['options']),
                ['A', 'B', 'C']
            )

    def test_first_attempt_is_number_one(self):
        """Test numbering starts at 1."""
        session = ExamSessionService.start_session(self.exam.id, self.participant_id)

        self.assertEqual(session['attempt_number'], 1)

    def test_numbering_continues_after_completion(self):
        """Test a completed attempt is followed by number 2."""
        first = ExamSessionService.start_session(self.exam.id, self.participant_id)
        ExamSessionService.submit(first['attempt_id'], self.participant_id)

        second = ExamSessionService.start_session(self.exam.id, self.participant_id)

        self.assertEqual(second['attempt_number'], 2)

    def test_abandoned_attempts_do_not_count_towards_ceiling(self):
        """Test in-progress attempts take numbers but not attempts."""
        self.exam.max_attempts = 1
        self.exam.save()

        first = ExamSessionService.start_session(self.exam.id, self.participant_id)
        second = ExamSessionService.start_session(self.exam.id, self.participant_id)

        self.assertEqual(first['attempt_number'], 1)
        self.assertEqual(second['attempt_number'], 2)

    def test_numbers_are_scoped_per_exam(self):
        """Test another exam starts its own numbering."""
        other_exam = factories.create_exam(title='Other')
        factories.create_bank(other_exam, 2)

        ExamSessionService.start_session(self.exam.id, self.participant_id)
        session = ExamSessionService.start_session(other_exam.id, self.participant_id)

        self.assertEqual(session['attempt_number'], 1)

    def test_attempt_limit_exceeded_before_selection(self):
        """Test the ceiling is enforced before any question is drawn."""
        for number in (1, 2):
            factories.create_completed_attempt(self.exam, self.participant_id, number, score=40)

        with patch('apps.exams.services.session_service.select_questions') as selector:
            with self.assertRaises(AttemptLimitExceededError) as ctx:
                ExamSessionService.start_session(self.exam.id, self.participant_id)

        selector.assert_not_called()
        self.assertEqual(ctx.exception.attempts_used, 2)
        self.assertEqual(ctx.exception.max_attempts, 2)
        self.assertEqual(ExamAttempt.objects.count(), 2)

    def test_unknown_exam(self):
        """Test starting an unknown exam raises NotFoundError."""
        with self.assertRaises(NotFoundError):
            ExamSessionService.start_session(uuid.uuid4(), self.participant_id)

    def test_timed_exam_sets_deadline(self):
        """Test a timed exam gets a deadline of start plus the limit."""
        self.exam.time_limit_minutes = 20
        self.exam.save()

        session = ExamSessionService.start_session(self.exam.id, self.participant_id)

        attempt = ExamAttempt.objects.get(id=session['attempt_id'])
        self.assertEqual(attempt.time_limit_at - attempt.started_at, timedelta(minutes=20))
        self.assertTrue(attempt.countdown_task_id)
        self.assertGreater(session['remaining_seconds'], 19 * 60)

    def test_untimed_exam_has_no_deadline(self):
        """Test an untimed exam arms nothing."""
        session = ExamSessionService.start_session(self.exam.id, self.participant_id)

        attempt = ExamAttempt.objects.get(id=session['attempt_id'])
        self.assertIsNone(attempt.time_limit_at)
        self.assertEqual(attempt.countdown_task_id, '')
        self.assertIsNone(session['remaining_seconds'])


class SaveAnswerTest(SessionTestCase):
    """Tests for ExamSessionService.save_answer."""

    def setUp(self):
        super().setUp()
        session = ExamSessionService.start_session(self.exam.id, self.participant_id)
        self.attempt_id = session['attempt_id']
        self.question_id = session['questions'][0]['id']

    def test_answer_is_replaced(self):
        """Test a second answer replaces the first."""
        ExamSessionService.save_answer(self.attempt_id, self.participant_id, self.question_id, 'A')
        ExamSessionService.save_answer(self.attempt_id, self.participant_id, self.question_id, 'C')

        attempt = ExamAttempt.objects.get(id=self.attempt_id)
        self.assertEqual(attempt.answers, {self.question_id: 'C'})

    def test_empty_answer_is_accepted(self):
        """Test an empty answer is stored as unanswered."""
        result = ExamSessionService.save_answer(self.attempt_id, self.participant_id, self.question_id, None)

        self.assertTrue(result['saved'])
        attempt = ExamAttempt.objects.get(id=self.attempt_id)
        self.assertEqual(attempt.answers[self.question_id], '')

    def test_blank_answers_are_not_counted(self):
        """Test answered_count ignores questions whose answer was cleared."""
        other_question = ExamAttempt.objects.get(id=self.attempt_id).question_order[1]
        ExamSessionService.save_answer(self.attempt_id, self.participant_id, self.question_id, 'B')
        ExamSessionService.save_answer(self.attempt_id, self.participant_id, other_question, '')

        result = ExamSessionService.save_answer(self.attempt_id, self.participant_id, self.question_id, '')

        self.assertEqual(result['answered_count'], 0)
        attempt = ExamAttempt.objects.get(id=self.attempt_id)
        self.assertEqual(len(attempt.answers), 2)
        self.assertEqual(attempt.get_results()['answered_count'], 0)

    def test_question_outside_attempt(self):
        """Test answering a question not shown in this attempt."""
        with self.assertRaises(NotFoundError):
            ExamSessionService.save_answer(self.attempt_id, self.participant_id, str(uuid.uuid4()), 'A')

    def test_answer_after_completion(self):
        """Test answering a completed attempt raises InvalidStateError."""
        ExamSessionService.submit(self.attempt_id, self.participant_id)

        with self.assertRaises(InvalidStateError):
            ExamSessionService.save_answer(self.attempt_id, self.participant_id, self.question_id, 'B')

    def test_answer_for_someone_elses_attempt(self):
        """Test another participant cannot answer."""
        with self.assertRaises(NotFoundError):
            ExamSessionService.save_answer(self.attempt_id, str(uuid.uuid4()), self.question_id, 'B')

    def test_answer_past_deadline_submits_attempt(self):
        """Test a late answer is refused and the attempt is force-submitted."""
        ExamSessionService.save_answer(self.attempt_id, self.participant_id, self.question_id, 'B')
        ExamAttempt.objects.filter(id=self.attempt_id).update(
            time_limit_at=timezone.now() - timedelta(minutes=5)
        )
        other_question = ExamAttempt.objects.get(id=self.attempt_id).question_order[1]

        with self.assertRaises(InvalidStateError):
            ExamSessionService.save_answer(self.attempt_id, self.participant_id, other_question, 'B')

        attempt = ExamAttempt.objects.get(id=self.attempt_id)
        self.assertTrue(attempt.is_completed)
        self.assertEqual(attempt.completion_source, CompletionSource.TIMEOUT)
        self.assertNotIn(other_question, attempt.answers)
        self.assertEqual(attempt.correct_count, 1)

    def test_answer_within_grace_period_is_kept(self):
        """Test an answer just after the deadline still counts."""
        ExamAttempt.objects.filter(id=self.attempt_id).update(
            time_limit_at=timezone.now() - timedelta(seconds=1)
        )

        result = ExamSessionService.save_answer(self.attempt_id, self.participant_id, self.question_id, 'B')

        self.assertTrue(result['saved'])
        self.assertEqual(result['remaining_seconds'], 0)


class SubmitTest(SessionTestCase):
    """Tests for ExamSessionService.submit."""

    def setUp(self):
        super().setUp()
        session = ExamSessionService.start_session(self.exam.id, self.participant_id)
        self.attempt_id = session['attempt_id']

    def test_passing_attempt(self):
        """Test 4 of 5 correct with a 70% threshold passes with 80."""
        self.answer_all(self.attempt_id, correct=4)

        result = ExamSessionService.submit(self.attempt_id, self.participant_id)

        self.assertEqual(result['score'], 80)
        self.assertTrue(result['passed'])
        self.assertFalse(result['already_completed'])
        self.assertEqual(result['correct_count'], 4)
        attempt = ExamAttempt.objects.get(id=self.attempt_id)
        self.assertIsNotNone(attempt.completed_at)
        self.assertEqual(attempt.completion_source, CompletionSource.MANUAL)
        self.assertTrue(attempt.certificate_id)
        self.assertEqual(len(self.certificate_requests), 1)
        self.assertEqual(self.certificate_requests[0]['attempt_id'], self.attempt_id)

    def test_failing_attempt_issues_no_certificate(self):
        """Test a failed attempt never reaches the certificate service."""
        self.answer_all(self.attempt_id, correct=2)

        result = ExamSessionService.submit(self.attempt_id, self.participant_id)

        self.assertEqual(result['score'], 40)
        self.assertFalse(result['passed'])
        self.assertEqual(self.certificate_requests, [])

    def test_second_submit_returns_stored_result(self):
        """Test resubmission is a no-op returning the first result."""
        self.answer_all(self.attempt_id, correct=5)
        first = ExamSessionService.submit(self.attempt_id, self.participant_id)
        completed_at = ExamAttempt.objects.get(id=self.attempt_id).completed_at

        with patch('apps.exams.services.session_service.score_attempt') as scorer:
            second = ExamSessionService.submit(self.attempt_id, source=CompletionSource.TIMEOUT)

        scorer.assert_not_called()
        self.assertTrue(second['already_completed'])
        self.assertEqual(second['score'], first['score'])
        attempt = ExamAttempt.objects.get(id=self.attempt_id)
        self.assertEqual(attempt.completed_at, completed_at)
        self.assertEqual(attempt.completion_source, CompletionSource.MANUAL)
        self.assertEqual(len(self.certificate_requests), 1)

    def test_unanswered_attempt_scores_zero(self):
        """Test submitting with no answers."""
        result = ExamSessionService.submit(self.attempt_id, self.participant_id)

        self.assertEqual(result['score'], 0)
        self.assertFalse(result['passed'])
        self.assertEqual(result['total_points'], 5)

    def test_open_text_answers(self):
        """Test open-text scoring through the full flow."""
        exam = factories.create_exam(passing_score=50)
        factories.create_question(
            exam,
            question_text='Name the audit standard body.',
            question_type=QuestionType.OPEN_TEXT,
            options={},
            correct_answer='IIA',
        )
        session = ExamSessionService.start_session(exam.id, self.participant_id)
        question_id = session['questions'][0]['id']
        self.assertIsNone(session['questions'][0]['options'])

        ExamSessionService.save_answer(session['attempt_id'], self.participant_id, question_id, '  iia ')
        result = ExamSessionService.submit(session['attempt_id'], self.participant_id)

        self.assertEqual(result['score'], 100)

    def test_store_failure_leaves_attempt_in_progress(self):
        """Test a failed bank read surfaces and the attempt stays open."""
        with patch(
            'apps.exams.services.session_service.QuestionBank.get_questions_by_id',
            side_effect=StoreUnavailableError(),
        ):
            with self.assertRaises(StoreUnavailableError):
                ExamSessionService.submit(self.attempt_id, self.participant_id)

        attempt = ExamAttempt.objects.get(id=self.attempt_id)
        self.assertIsNone(attempt.completed_at)
        self.assertIsNone(attempt.score)

    def test_question_removed_from_bank(self):
        """Test scoring refuses when a shown question has been deleted."""
        attempt = ExamAttempt.objects.get(id=self.attempt_id)
        self.exam.questions.filter(id=attempt.question_order[0]).delete()

        with self.assertRaises(NotFoundError):
            ExamSessionService.submit(self.attempt_id, self.participant_id)

        self.assertFalse(ExamAttempt.objects.get(id=self.attempt_id).is_completed)

    def test_certificate_failure_keeps_passing_attempt(self):
        """Test an issuance failure is recorded but does not undo completion."""
        self.install_certificate_service(status_code=503)
        self.answer_all(self.attempt_id, correct=5)

        result = ExamSessionService.submit(self.attempt_id, self.participant_id)

        self.assertTrue(result['passed'])
        attempt = ExamAttempt.objects.get(id=self.attempt_id)
        self.assertTrue(attempt.is_completed)
        self.assertTrue(attempt.passed)
        self.assertEqual(attempt.certificate_id, '')
        self.assertIn('503', attempt.certificate_error)

    def test_submit_unknown_attempt(self):
        """Test submitting an unknown attempt raises NotFoundError."""
        with self.assertRaises(NotFoundError):
            ExamSessionService.submit(uuid.uuid4(), self.participant_id)

    def test_submit_by_another_participant(self):
        """Test ownership is checked when a participant is given."""
        with self.assertRaises(NotFoundError):
            ExamSessionService.submit(self.attempt_id, str(uuid.uuid4()))

    def test_completed_attempt_count_reaches_ceiling(self):
        """Test the scenario of two failed attempts exhausting the exam."""
        ExamSessionService.submit(self.attempt_id, self.participant_id)
        second = ExamSessionService.start_session(self.exam.id, self.participant_id)
        ExamSessionService.submit(second['attempt_id'], self.participant_id)

        with self.assertRaises(AttemptLimitExceededError):
            ExamSessionService.start_session(self.exam.id, self.participant_id)


class AttemptQueryTest(SessionTestCase):
    """Tests for attempt read operations."""

    def test_get_attempt_resumes_session(self):
        """Test reloading an attempt returns its frozen questions and answers."""
        session = ExamSessionService.start_session(self.exam.id, self.participant_id)
        question_id = session['questions'][2]['id']
        ExamSessionService.save_answer(session['attempt_id'], self.participant_id, question_id, 'C')

        data = ExamSessionService.get_attempt(session['attempt_id'], self.participant_id)

        self.assertEqual(data['questions'], session['questions'])
        self.assertEqual(data['answers'], {question_id: 'C'})
        self.assertEqual(data['status'], 'in_progress')

    def test_results_of_in_progress_attempt(self):
        """Test results are refused until completion."""
        session = ExamSessionService.start_session(self.exam.id, self.participant_id)

        with self.assertRaises(InvalidStateError):
            ExamSessionService.get_attempt_results(session['attempt_id'], self.participant_id)

    def test_participant_attempts_newest_first(self):
        """Test listing a participant's attempts."""
        first = ExamSessionService.start_session(self.exam.id, self.participant_id)
        ExamSessionService.submit(first['attempt_id'], self.participant_id)
        second = ExamSessionService.start_session(self.exam.id, self.participant_id)

        attempts = list(ExamSessionService.get_participant_attempts(self.participant_id))

        self.assertEqual([str(a.id) for a in attempts], [second['attempt_id'], first['attempt_id']])
        self.assertEqual(
            ExamSessionService.get_participant_attempts(self.participant_id, exam_id=uuid.uuid4()).count(),
            0
        )


class MixedExamScenarioTest(SessionTestCase):
    """One multiple-choice and one open-text question, a single attempt each."""

    def setUp(self):
        super().setUp()
        self.exam = factories.create_exam(passing_score=50, max_attempts=1)
        self.choice = factories.create_question(self.exam, correct_answer='A', order_index=0)
        self.open_text = factories.create_question(
            self.exam,
            question_text='Which animal says meow?',
            question_type=QuestionType.OPEN_TEXT,
            options={},
            correct_answer='cat',
            order_index=1,
        )

    def take_exam(self, participant_id, choice_answer, open_answer):
        session = ExamSessionService.start_session(self.exam.id, participant_id)
        answers = {str(self.choice.id): choice_answer, str(self.open_text.id): open_answer}
        for question in session['questions']:
            ExamSessionService.save_answer(
                session['attempt_id'], participant_id, question['id'], answers[question['id']]
            )
        return ExamSessionService.submit(session['attempt_id'], participant_id)

    def test_all_correct_passes(self):
        """Test {A, cat} scores 100 and passes."""
        result = self.take_exam(self.participant_id, 'A', 'cat')

        self.assertEqual(result['score'], 100)
        self.assertTrue(result['passed'])
        self.assertEqual(result['attempt_number'], 1)

    def test_all_wrong_fails(self):
        """Test {B, dog} scores 0 and fails."""
        result = self.take_exam(self.participant_id, 'B', 'dog')

        self.assertEqual(result['score'], 0)
        self.assertFalse(result['passed'])

    def test_single_attempt_ceiling(self):
        """Test a second start after the only attempt is refused."""
        self.take_exam(self.participant_id, 'B', 'dog')

        with self.assertRaises(AttemptLimitExceededError):
            ExamSessionService.start_session(self.exam.id, self.participant_id)
