from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .models import Modality, PracticeItem, Section, TestPart
from .settings import Settings, settings


class CaptureScope(str, Enum):
	# One capture per prompt, strictly sequential (Speaking 1-3)
	PER_PROMPT = "per_prompt"
	# One capture answers every prompt of the item (Speaking 4 and all writing parts)
	WHOLE_ITEM = "whole_item"


@dataclass(frozen=True)
class PartProfile:
	"""Timing and capture shape of one test part."""
	part: TestPart
	modality: Modality
	scope: CaptureScope
	response_seconds: int
	preparation_seconds: Optional[int] = None
	illustrations: int = 0

	def captures_for(self, item: PracticeItem) -> int:
		if self.scope == CaptureScope.PER_PROMPT:
			return len(item.prompts)
		return 1

	def prompts_per_capture(self, item: PracticeItem) -> int:
		if self.scope == CaptureScope.PER_PROMPT:
			return 1
		return len(item.prompts)


def profile_for(part: TestPart, cfg: Settings = settings) -> PartProfile:
	profiles: Dict[TestPart, PartProfile] = {
		TestPart.SPEAKING_1: PartProfile(part, Modality.AUDIO, CaptureScope.PER_PROMPT, cfg.speaking_part1_seconds),
		TestPart.SPEAKING_2: PartProfile(part, Modality.AUDIO, CaptureScope.PER_PROMPT, cfg.speaking_part2_seconds, illustrations=1),
		TestPart.SPEAKING_3: PartProfile(part, Modality.AUDIO, CaptureScope.PER_PROMPT, cfg.speaking_part3_seconds, illustrations=2),
		TestPart.SPEAKING_4: PartProfile(
			part,
			Modality.AUDIO,
			CaptureScope.WHOLE_ITEM,
			cfg.speaking_part4_seconds,
			preparation_seconds=cfg.speaking_part4_prep_seconds,
		),
		TestPart.WRITING_1: PartProfile(part, Modality.TEXT, CaptureScope.WHOLE_ITEM, cfg.writing_part1_seconds),
		TestPart.WRITING_2_3: PartProfile(part, Modality.TEXT, CaptureScope.WHOLE_ITEM, cfg.writing_part23_seconds),
		TestPart.WRITING_4: PartProfile(part, Modality.TEXT, CaptureScope.WHOLE_ITEM, cfg.writing_part4_seconds),
	}
	return profiles[part]


def parts_of(section: Section) -> List[TestPart]:
	return [p for p in TestPart if p.section == section]


def full_test_seconds(section: Section, cfg: Settings = settings) -> int:
	if section == Section.SPEAKING:
		return cfg.speaking_full_test_seconds
	return cfg.writing_full_test_seconds
