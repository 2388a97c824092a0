from __future__ import annotations


class PracticeError(Exception):
	"""Base class for errors raised by the practice core."""


class DeviceUnavailable(PracticeError):
	"""The capture device could not be acquired (no device, permission denied, or already in use)."""


class ValidationFailure(PracticeError):
	"""A user intent is not legal in the current state; nothing was changed."""


class EvaluationFailure(PracticeError):
	"""The scoring service failed or returned a payload that does not match the rubric.

	Only raised inside the evaluation boundary; callers receive a fallback result instead.
	"""
