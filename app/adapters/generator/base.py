from abc import ABC, abstractmethod


class AbstractResponseGenerator(ABC):
	"""Interface for components that turn a prompt into response text."""

	@abstractmethod
	async def generate(self, prompt: str) -> str:
		"""Produce a response for ``prompt``.

		Args:
			prompt: Prompt text supplied by the client.

		Returns:
			str: Generated response text.
		"""
		...
