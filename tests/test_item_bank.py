import unittest

from aptis_practice.illustration import illustration_prompts
from aptis_practice.item_bank import WRITING_PART1_QUESTIONS, get_item, list_items
from aptis_practice.models import Section, TestPart
from aptis_practice.parts import CaptureScope, full_test_seconds, parts_of, profile_for


class ItemBankTests(unittest.TestCase):
	def test_every_part_has_items_with_unique_positive_ids(self) -> None:
		for part in TestPart:
			items = list_items(part)
			self.assertTrue(items, part)
			ids = [i.id for i in items]
			self.assertEqual(len(ids), len(set(ids)), part)
			self.assertTrue(all(i > 0 for i in ids), part)
			self.assertTrue(all(i.part == part for i in items), part)

	def test_prompt_shapes(self) -> None:
		self.assertEqual(len(list_items(TestPart.SPEAKING_4)), 14)
		self.assertTrue(all(len(i.prompts) == 3 for i in list_items(TestPart.SPEAKING_4)))
		self.assertTrue(all(len(i.prompts) == 5 for i in list_items(TestPart.WRITING_1)))
		self.assertTrue(all(len(i.prompts) == 4 for i in list_items(TestPart.WRITING_2_3)))
		self.assertTrue(all(len(i.prompts) == 2 for i in list_items(TestPart.WRITING_4)))
		self.assertTrue(all(i.image_descriptor for i in list_items(TestPart.SPEAKING_2)))
		self.assertEqual(len(WRITING_PART1_QUESTIONS), 23)

	def test_get_item(self) -> None:
		item = get_item(TestPart.SPEAKING_4, 1)
		self.assertEqual(item.topic, "Teamwork")
		self.assertIsNone(get_item(TestPart.SPEAKING_4, 999))

	def test_comparison_topics_split_into_two_scenes(self) -> None:
		for item in list_items(TestPart.SPEAKING_3):
			scenes = illustration_prompts(item, 2)
			self.assertEqual(len(scenes), 2, item.topic)
			self.assertNotEqual(scenes[0], scenes[1], item.topic)


class PartProfileTests(unittest.TestCase):
	def test_profiles(self) -> None:
		self.assertEqual(profile_for(TestPart.SPEAKING_1).response_seconds, 30)
		self.assertEqual(profile_for(TestPart.SPEAKING_2).scope, CaptureScope.PER_PROMPT)
		s4 = profile_for(TestPart.SPEAKING_4)
		self.assertEqual((s4.preparation_seconds, s4.response_seconds), (60, 120))
		self.assertEqual(s4.scope, CaptureScope.WHOLE_ITEM)
		self.assertEqual(profile_for(TestPart.WRITING_4).response_seconds, 1800)

	def test_captures_per_item(self) -> None:
		item = list_items(TestPart.SPEAKING_2)[0]
		self.assertEqual(profile_for(TestPart.SPEAKING_2).captures_for(item), 3)
		s4_item = list_items(TestPart.SPEAKING_4)[0]
		self.assertEqual(profile_for(TestPart.SPEAKING_4).captures_for(s4_item), 1)
		self.assertEqual(profile_for(TestPart.SPEAKING_4).prompts_per_capture(s4_item), 3)

	def test_sections(self) -> None:
		self.assertEqual(len(parts_of(Section.SPEAKING)), 4)
		self.assertEqual(parts_of(Section.WRITING), [TestPart.WRITING_1, TestPart.WRITING_2_3, TestPart.WRITING_4])
		self.assertEqual(full_test_seconds(Section.WRITING), 3600)
		self.assertEqual(full_test_seconds(Section.SPEAKING), 900)


if __name__ == "__main__":
	unittest.main()
