"""
Item Bank
=========

Static, read-only practice content grouped by test part. Items are built once at
import time and exposed as tuples; nothing in the practice core mutates them.
"""

from __future__ import annotations
from typing import Dict, List, Optional, Sequence, Tuple

from .models import PracticeItem, TestPart


def _item(part: TestPart, id: int, topic: str, prompts: Sequence[str], image: Optional[str] = None) -> PracticeItem:
	return PracticeItem(id=id, part=part, topic=topic, prompts=tuple(prompts), image_descriptor=image)


# ============================================================================
# SPEAKING
# ============================================================================

_SPEAKING_PART1 = [
	"Please tell me about your family.",
	"What do you usually do at the weekend?",
	"Describe your hometown.",
	"What kind of food do you like?",
	"Tell me about your best friend.",
	"What do you do in your free time?",
	"Describe the house or flat you live in.",
	"What is your favourite season and why?",
	"How do you usually travel to work or school?",
	"Tell me about your job or your studies.",
	"What kind of music do you like?",
	"Describe your daily routine.",
	"What did you do last weekend?",
	"Tell me about a place you would like to visit.",
	"What is the weather like in your country?",
	"What sports do you enjoy?",
	"Tell me about your favourite film.",
	"How often do you use the internet?",
	"What do you like about your neighbourhood?",
	"Describe a typical meal in your country.",
	"What are your plans for next year?",
	"Tell me about a festival in your country.",
	"What do you usually do in the evening?",
	"Who is the most important person in your life?",
	"What did you do on your last holiday?",
	"Do you prefer reading books or watching TV?",
	"Tell me about your first teacher.",
	"What is your favourite room in your home?",
	"How do you keep fit and healthy?",
	"What kind of clothes do you like to wear?",
	"Tell me about a shop you often go to.",
	"What languages would you like to learn?",
	"Describe your ideal weekend.",
	"What do you like to do when it rains?",
	"Tell me about a gift you received.",
	"What jobs do people in your family do?",
	"How do you celebrate your birthday?",
]

_SPEAKING_PART2 = [
	(
		"A family having a picnic in the park",
		[
			"Describe this picture.",
			"Tell me about the last time you ate outside.",
			"Why do people enjoy spending time in parks?",
		],
	),
	(
		"People working together in a busy office",
		[
			"Describe this picture.",
			"Tell me about a place where you have worked or studied.",
			"Do you prefer working alone or in a team? Why?",
		],
	),
	(
		"A crowded train station in the morning",
		[
			"Describe this picture.",
			"Tell me about a journey you made recently.",
			"How could public transport be improved in your city?",
		],
	),
	(
		"Students studying in a library",
		[
			"Describe this picture.",
			"Tell me about the place where you like to study.",
			"Why do some people prefer studying in groups?",
		],
	),
	(
		"A street market selling fruit and vegetables",
		[
			"Describe this picture.",
			"Tell me about a market you have visited.",
			"Is it better to shop at markets or supermarkets? Why?",
		],
	),
	(
		"A group of friends playing football on a beach",
		[
			"Describe this picture.",
			"Tell me about a sport you played when you were a child.",
			"Why is it important for people to do exercise?",
		],
	),
	(
		"A chef cooking in a restaurant kitchen",
		[
			"Describe this picture.",
			"Tell me about a meal you cooked for other people.",
			"Why do people enjoy eating in restaurants?",
		],
	),
	(
		"Volunteers cleaning up a river bank",
		[
			"Describe this picture.",
			"Tell me about a time you helped your community.",
			"What can ordinary people do to protect the environment?",
		],
	),
]

_SPEAKING_PART3 = [
	(
		"A busy city street / A quiet village road",
		[
			"Tell me what you can see in the two pictures.",
			"Which place would you prefer to live in? Why?",
			"How do you think cities will change in the future?",
		],
	),
	(
		"Reading a paper book & Reading on a tablet",
		[
			"Tell me what you can see in the two pictures.",
			"Which way of reading do you prefer? Why?",
			"Will paper books disappear one day?",
		],
	),
	(
		"Travelling by plane or Travelling by train",
		[
			"Tell me what you can see in the two pictures.",
			"What are the advantages of each way of travelling?",
		],
	),
	(
		"Cooking at home / Eating fast food",
		[
			"Tell me what you can see in the two pictures.",
			"Which do you think is healthier? Why?",
			"Why do many young people not cook any more?",
		],
	),
	(
		"A classroom lesson & An online lesson",
		[
			"Tell me what you can see in the two pictures.",
			"Which kind of lesson is more effective? Why?",
			"How has technology changed education?",
		],
	),
	(
		"Working in an office / Working from home",
		[
			"Tell me what you can see in the two pictures.",
			"What are the benefits of each place of work?",
		],
	),
]

_SPEAKING_PART4 = [
	("Teamwork", ["Tell me about a time when you worked in a team.", "How do you feel when you work in a team?", "What are the advantages of teamwork?"]),
	("A Time you did unwanted work", ["Tell me about a time when you did unwanted work.", "How did you feel when you had to do it?", "What did you learn from that experience?"]),
	("Save Money", ["Tell me about a time when you saved money.", "How did you feel when you were able to save that money?", "What did you learn from that experience?"]),
	("A time with many choices", ["Tell me about a time when you had many choices.", "How did you feel when you had to make a decision?", "What did you learn from that experience?"]),
	("Help Someone", ["Tell me about a time when you helped someone.", "How did you feel when you helped that person?", "What did you learn from that experience?"]),
	("Good News", ["Tell me about a time you received good news.", "How did you feel when you received the good news?", "What did you learn from that experience?"]),
	("Adventure Game", ["Tell me about a time when you played an adventure game.", "How did you feel when you played the game?", "What did you learn from playing that game?"]),
	("Achievement", ["Tell me about an achievement.", "How did you feel when you achieved that?", "What did you learn from that experience?"]),
	("Had Difficulty", ["Tell me about a time when you had difficulty.", "How did you feel when you had difficulty?", "What did you learn from that experience?"]),
	("Sea and Mountains", ["Tell me about the attractions of the sea and mountains.", "How do you feel about the sea and mountains?", "What do you think are the benefits of visiting the sea and mountains?"]),
	("The last time you visited someone", ["Tell me about the last time you visited someone.", "How did you feel when you visited them?", "What did you learn from that visit?"]),
	("A time you were in a rush", ["Talk about a time you were in a rush.", "How do you feel when you're late?", "Society is becoming more modern, and people have less time to relax. What do you think?"]),
	("Learned Something New", ["Can you describe a time when you learned something new?", "How did you feel about it?", "Did it benefit you in any way?"]),
	("A time you had to cooperate to complete a task", ["Tell me about a time you had to cooperate to complete a task.", "How did you feel about working on that task together?", "International collaboration is encouraged. What do you think?"]),
]


# ============================================================================
# WRITING
# ============================================================================

WRITING_PART1_QUESTIONS = [
	"What is your name?",
	"What do you do? / What is your job",
	"Where do you live?",
	"What is your favourite device?",
	"What's your favourite colour?",
	"Where are you from?",
	"What's the weather like today?",
	"What do you do in your free time?",
	"What is your first language?",
	"Who do you usually go to the movies with?",
	"What's your favorite sport?",
	"What did you do yesterday? / What did you do last night?",
	"How do you go to school?",
	"What's your hobby?",
	"Where do you like to visit?",
	"What do you like to do in the afternoon?",
	"Which job would you like to do in the future?",
	"How many phones do you have?",
	"Do you like to take photos?",
	"Where do you like to go on holiday?",
	"How are you?",
	"How do you get to work?",
	"What do you like to do in the evening?",
]

# Five short-answer questions per form
_WRITING_PART1_FORMS = [
	("Form A", [0, 1, 2, 3, 4]),
	("Form B", [5, 6, 7, 8, 9]),
	("Form C", [10, 11, 12, 13, 14]),
	("Form D", [15, 16, 17, 18, 19]),
	("Form E", [20, 21, 22, 0, 7]),
]

# Part 2 question (20-30 words) followed by three Part 3 chat questions (30-40 words each)
_WRITING_PART23 = [
	(
		"Travel club",
		[
			"You are a new member of the travel club. Fill in the form. Write in sentences. Use 20-30 words. Tell us why you like travelling.",
			"What is the best place you have ever visited? Why?",
			"Do you prefer travelling alone or with friends? Why?",
			"What kind of holiday would you like to have next year?",
		],
	),
	(
		"Cooking club",
		[
			"You are a new member of the cooking club. Fill in the form. Write in sentences. Use 20-30 words. Tell us about your favourite dish.",
			"Who taught you to cook? What did you learn?",
			"Do you think children should learn to cook at school? Why?",
			"Tell us about a special meal you have had recently.",
		],
	),
	(
		"Book club",
		[
			"You are a new member of the book club. Fill in the form. Write in sentences. Use 20-30 words. Tell us what you like to read.",
			"Tell us about a book that changed the way you think.",
			"Do you prefer reading paper books or e-books? Why?",
			"How can we encourage young people to read more?",
		],
	),
	(
		"Sports club",
		[
			"You are a new member of the sports club. Fill in the form. Write in sentences. Use 20-30 words. Tell us about the sports you play.",
			"What sport would you like to try in the future? Why?",
			"Is it better to exercise indoors or outdoors? Why?",
			"How do you stay motivated when training is difficult?",
		],
	),
]

# Informal email (40-50 words) then formal email (120-150 words)
_WRITING_PART4 = [
	(
		"Club trip cancelled",
		[
			"The travel club has cancelled its summer trip. Write an email to your friend, who is also a member. Tell them how you feel and what you would like to do instead.",
			"Write an email to the club manager. Explain how you feel about the cancellation and suggest what the club could do for its members.",
		],
	),
	(
		"New opening hours",
		[
			"The sports club is going to close earlier in the evening. Write an email to your friend about how this change affects you.",
			"Write an email to the club manager. Explain why the change is a problem for members and suggest a solution.",
		],
	),
	(
		"Cooking competition",
		[
			"The cooking club is organising a competition. Write an email to your friend. Tell them about the competition and whether you will take part.",
			"Write an email to the club organiser. Give your opinion about the competition and suggest how it could be improved.",
		],
	),
	(
		"Library renovation",
		[
			"The book club meeting room will be closed for three months. Write an email to your friend telling them how you feel about it.",
			"Write an email to the club secretary. Explain what problems the closure will cause and suggest another place for meetings.",
		],
	),
]


def _build_bank() -> Dict[TestPart, Tuple[PracticeItem, ...]]:
	bank: Dict[TestPart, List[PracticeItem]] = {part: [] for part in TestPart}
	for i, text in enumerate(_SPEAKING_PART1, start=1):
		bank[TestPart.SPEAKING_1].append(_item(TestPart.SPEAKING_1, i, text, [text]))
	for i, (topic, questions) in enumerate(_SPEAKING_PART2, start=1):
		bank[TestPart.SPEAKING_2].append(_item(TestPart.SPEAKING_2, i, topic, questions, image=topic))
	for i, (topic, questions) in enumerate(_SPEAKING_PART3, start=1):
		bank[TestPart.SPEAKING_3].append(_item(TestPart.SPEAKING_3, i, topic, questions, image=topic))
	for i, (topic, questions) in enumerate(_SPEAKING_PART4, start=1):
		bank[TestPart.SPEAKING_4].append(_item(TestPart.SPEAKING_4, i, topic, questions))
	for i, (name, indexes) in enumerate(_WRITING_PART1_FORMS, start=1):
		bank[TestPart.WRITING_1].append(_item(TestPart.WRITING_1, i, name, [WRITING_PART1_QUESTIONS[k] for k in indexes]))
	for i, (topic, prompts) in enumerate(_WRITING_PART23, start=1):
		bank[TestPart.WRITING_2_3].append(_item(TestPart.WRITING_2_3, i, topic, prompts))
	for i, (topic, prompts) in enumerate(_WRITING_PART4, start=1):
		bank[TestPart.WRITING_4].append(_item(TestPart.WRITING_4, i, topic, prompts))
	return {part: tuple(items) for part, items in bank.items()}


_BANK = _build_bank()


def list_items(part: TestPart) -> Tuple[PracticeItem, ...]:
	return _BANK[part]


def get_item(part: TestPart, item_id: int) -> Optional[PracticeItem]:
	for item in _BANK[part]:
		if item.id == item_id:
			return item
	return None
