import asyncio
import unittest

from aptis_practice.capture import StreamedAudioDevice
from aptis_practice.errors import ValidationFailure
from aptis_practice.full_test import AnswerStore, FullTestCoordinator, FullTestState
from aptis_practice.item_bank import get_item, list_items
from aptis_practice.models import Section, SessionState, TestPart, TextArtifact

from support import FakeEvaluator, FakeIllustrator

MANUAL = 3600.0


class AnswerStoreTests(unittest.TestCase):
	def test_committed_records_are_locked(self) -> None:
		store = AnswerStore()
		item = list_items(TestPart.WRITING_1)[0]
		store.add(item)
		store.save_draft(TestPart.WRITING_1, [TextArtifact(answers=("a",))])
		store.commit(TestPart.WRITING_1)
		with self.assertRaises(ValidationFailure):
			store.save_draft(TestPart.WRITING_1, [])
		with self.assertRaises(ValidationFailure):
			store.record(TestPart.WRITING_4)


class WritingFullTestTests(unittest.IsolatedAsyncioTestCase):
	def _coordinator(self, evaluator=None, **kwargs) -> FullTestCoordinator:
		self.evaluator = evaluator or FakeEvaluator()
		return FullTestCoordinator(Section.WRITING, evaluator=self.evaluator, interval=MANUAL, **kwargs)

	async def test_start_opens_first_part_without_part_timer(self) -> None:
		test = self._coordinator()
		with self.assertRaises(ValidationFailure):
			test.goto(TestPart.WRITING_4)
		test.start({TestPart.WRITING_1: get_item(TestPart.WRITING_1, 2)})
		self.assertEqual(test.state, FullTestState.IN_PROGRESS)
		self.assertEqual(test.remaining, 3600)
		self.assertEqual(test.current, TestPart.WRITING_1)
		self.assertEqual(test.store.record(TestPart.WRITING_1).item.id, 2)
		session = test.active_session()
		self.assertIsNone(session.capture.remaining)
		self.assertEqual(len(session.capture.answers), 5)
		test.close()

	async def test_navigation_keeps_drafts(self) -> None:
		test = self._coordinator()
		test.start()
		test.active_session().write_answer(0, "Minh")
		test.goto(TestPart.WRITING_4)
		self.assertEqual(test.store.record(TestPart.WRITING_1).artifacts[0].answers[0], "Minh")
		test.active_session().write_answer(1, "Dear Sir or Madam")
		test.goto(TestPart.WRITING_1)
		self.assertEqual(test.active_session().capture.answers[0], "Minh")
		self.assertEqual(test.store.record(TestPart.WRITING_4).artifacts[0].answers, ("", "Dear Sir or Madam"))
		test.close()

	async def test_submitted_part_is_locked(self) -> None:
		test = self._coordinator()
		test.start()
		test.active_session().write_answer(0, "Minh")
		test.submit_part()
		self.assertTrue(test.store.record(TestPart.WRITING_1).committed)
		self.assertEqual(test.current, TestPart.WRITING_2_3)
		with self.assertRaises(ValidationFailure):
			test.goto(TestPart.WRITING_1)
		self.assertEqual(test.store.record(TestPart.WRITING_1).artifacts[0].answers[0], "Minh")
		test.close()

	async def test_submit_skips_to_remaining_parts_then_finalizes(self) -> None:
		test = self._coordinator()
		test.start()
		test.goto(TestPart.WRITING_2_3)
		test.submit_part()
		self.assertEqual(test.current, TestPart.WRITING_4)
		test.submit_part()
		self.assertEqual(test.current, TestPart.WRITING_1)
		test.submit_part()
		self.assertIn(test.state, (FullTestState.EVALUATING, FullTestState.FINISHED))
		await test.settle()
		self.assertEqual(test.state, FullTestState.FINISHED)
		self.assertEqual(len(self.evaluator.calls), 3)

	async def test_expiry_commits_every_part_and_evaluates_each_once(self) -> None:
		test = self._coordinator(duration_seconds=2)
		test.start()
		test.active_session().write_answer(0, "Minh")
		test.countdown.tick()
		self.assertEqual(test.state, FullTestState.IN_PROGRESS)
		test.countdown.tick()
		self.assertEqual(test.state, FullTestState.EVALUATING)
		records = test.store.records
		self.assertEqual(len(records), 3)
		self.assertTrue(all(r.committed for r in records))
		self.assertEqual(records[0].artifacts[0].answers[0], "Minh")
		# Parts never opened are committed empty
		self.assertEqual(records[2].artifacts, ())
		with self.assertRaises(ValidationFailure):
			test.active_session()
		await test.settle()
		self.assertEqual(test.state, FullTestState.FINISHED)
		self.assertEqual(sorted(i.part.value for i, _ in self.evaluator.calls), sorted(p.value for p in test.parts))
		self.assertEqual([len(r.evaluations) for r in test.store.records], [1, 2, 2])

	async def test_finish_is_idempotent(self) -> None:
		test = self._coordinator()
		test.start()
		await test.finish()
		await test.finish()
		test.countdown.tick()
		self.assertEqual(len(self.evaluator.calls), 3)
		self.assertEqual(test.state, FullTestState.FINISHED)

	async def test_evaluations_fan_out_concurrently(self) -> None:
		evaluator = FakeEvaluator()
		evaluator.gate = asyncio.Event()
		test = self._coordinator(evaluator=evaluator)
		test.start()
		pending = asyncio.ensure_future(test.finish())
		for _ in range(5):
			await asyncio.sleep(0)
		self.assertEqual(len(evaluator.calls), 3)
		self.assertEqual(test.state, FullTestState.EVALUATING)
		evaluator.gate.set()
		await pending
		self.assertEqual(test.state, FullTestState.FINISHED)

	async def test_failed_part_does_not_block_the_others(self) -> None:
		evaluator = FakeEvaluator(score=4, fail_ids=[1])
		test = self._coordinator(evaluator=evaluator)
		test.start(
			{
				TestPart.WRITING_1: get_item(TestPart.WRITING_1, 2),
				TestPart.WRITING_2_3: get_item(TestPart.WRITING_2_3, 2),
				TestPart.WRITING_4: get_item(TestPart.WRITING_4, 1),
			}
		)
		await test.finish()
		snap = test.snapshot()
		scores = {p["part"]: p["score"] for p in snap["parts"]}
		self.assertEqual(scores["writing_4"], 0)
		self.assertGreater(scores["writing_2_3"], 0)

	async def test_finish_before_start_is_rejected(self) -> None:
		test = self._coordinator()
		with self.assertRaises(ValidationFailure):
			await test.finish()


class SpeakingFullTestTests(unittest.IsolatedAsyncioTestCase):
	async def test_leaving_a_part_ends_its_recording(self) -> None:
		evaluator = FakeEvaluator()
		device = StreamedAudioDevice()
		test = FullTestCoordinator(
			Section.SPEAKING, evaluator=evaluator, device=device, illustrator=FakeIllustrator(), interval=MANUAL
		)
		test.start()
		self.assertEqual(test.remaining, 900)
		session = test.active_session()
		session.begin_capture()
		session.push_audio(b"hello")
		test.goto(TestPart.SPEAKING_4)
		self.assertFalse(device.is_open)
		s1 = test.store.record(TestPart.SPEAKING_1)
		self.assertEqual([a.data for a in s1.artifacts], [b"hello"])
		self.assertFalse(s1.committed)
		# The shared device is free for the next part
		test.active_session().begin_capture()
		self.assertTrue(device.is_open)
		await test.finish()
		self.assertFalse(device.is_open)
		self.assertEqual(len(evaluator.calls), 4)
		self.assertEqual(test.sessions[TestPart.SPEAKING_4].state, SessionState.FINISHED)
		self.assertEqual(test.state, FullTestState.FINISHED)

	async def test_expiry_during_a_recording_keeps_it(self) -> None:
		evaluator = FakeEvaluator()
		device = StreamedAudioDevice()
		test = FullTestCoordinator(
			Section.SPEAKING,
			evaluator=evaluator,
			device=device,
			illustrator=FakeIllustrator(),
			interval=MANUAL,
			duration_seconds=1,
		)
		test.start()
		session = test.active_session()
		session.begin_capture()
		question_timer = session.capture.countdown
		self.assertTrue(question_timer.running)
		session.push_audio(b"abc")
		test.countdown.tick()
		self.assertFalse(question_timer.running)
		self.assertFalse(device.is_open)
		s1 = test.store.record(TestPart.SPEAKING_1)
		self.assertTrue(s1.committed)
		self.assertEqual([a.data for a in s1.artifacts], [b"abc"])
		await test.settle()
		self.assertEqual(test.state, FullTestState.FINISHED)
		self.assertEqual(len(evaluator.calls), 4)
		s1_call = [artifacts for item, artifacts in evaluator.calls if item.part == TestPart.SPEAKING_1]
		self.assertEqual([a.data for a in s1_call[0]], [b"abc"])


if __name__ == "__main__":
	unittest.main()
