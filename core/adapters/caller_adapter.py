"""Caller identity resolver.

In production, this would sit behind real authentication (signed requests, session
or token auth). Here the caller account is read from a trusted request header so
the ledger core stays testable without a host runtime.
"""

from django.conf import settings

from core.constants import check_account


class CallerAdapter:
	"""
	Resolve "who is invoking this operation" for a request.
	"""

	@staticmethod
	def header_name() -> str:
		return getattr(settings, "CALLER_HEADER", "X-Caller-Account")

	@staticmethod
	def resolve(request) -> str | None:
		"""
		Prefer the caller header; fall back to DEFAULT_CALLER_ACCOUNT (dev convenience).
		Returns None when neither yields a usable account.
		"""
		raw = request.headers.get(CallerAdapter.header_name()) or getattr(settings, "DEFAULT_CALLER_ACCOUNT", "")
		raw = (raw or "").strip()
		if not raw:
			return None
		try:
			return check_account(raw)
		except ValueError:
			return None
