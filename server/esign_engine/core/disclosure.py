"""Versioned ESIGN disclosure texts.

The disclosure is a legal notice presented before consent. Published
versions are never edited: a wording change is a new version, so that
the hash stored with every consent keeps pointing at the exact text the
signer acknowledged.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Disclosure:
    version: str
    text: str

    @property
    def hash(self) -> str:
        return hashlib.sha256(self.text.encode("utf-8")).hexdigest()


_DISCLOSURE_V1_0 = """
ELECTRONIC SIGNATURE DISCLOSURE AND CONSENT

Federal law requires that you be informed of the following before you
sign documents electronically.

1. HARDWARE AND SOFTWARE REQUIREMENTS
To access, view and keep electronic documents you need:
- A computer or mobile device with internet access
- A current web browser (Chrome, Firefox, Safari or Edge)
- Software able to display PDF documents
- A valid email address for receiving documents
- Enough storage to keep copies of your documents

2. RIGHT TO PAPER COPIES
You may ask for a paper copy of any document at any time, free of
charge, by contacting us.

3. RIGHT TO WITHDRAW CONSENT
You may withdraw your consent to do business electronically at any
time. Withdrawing consent does not affect the legal validity of
documents you have already signed electronically.

By checking the acknowledgment boxes you confirm that you have read
and understood this disclosure, that you meet the hardware and software
requirements, that you consent to conduct business electronically, and
that you understand your rights to paper copies and to withdraw consent.
"""

DISCLOSURES: dict[str, Disclosure] = {
    "1.0": Disclosure(version="1.0", text=_DISCLOSURE_V1_0),
}


def get_disclosure(version: str) -> Disclosure | None:
    return DISCLOSURES.get(version)
