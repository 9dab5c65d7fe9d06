"""Filename convention checks for script-matched and bilingual recordings."""
from __future__ import annotations
from dataclasses import dataclass
import json
import re

from audioqc.types import FilenameValidation, Status

SPONTANEOUS_FORMAT = "SPONTANEOUS_[number]-[LanguageCode]-user-[UserID]-agent-[AgentID].wav"
REGULAR_FORMAT = "[ConversationID]-[LanguageCode]-user-[UserID]-agent-[AgentID].wav"

_WAV_EXT = re.compile(r"\.wav$", re.IGNORECASE)
_ANY_EXT = re.compile(r"\.[A-Za-z0-9_]+$")
_SPONTANEOUS = re.compile(r"^SPONTANEOUS_(\d+)-(.+)$")
# conversation ids may contain dashes, so anchor on the trailing user/agent parts
_REGULAR = re.compile(r"^(.+)-([a-z_]+)-user-([^-]+)-agent-([^-]+)$")


@dataclass(frozen=True)
class BilingualData:
    language_codes: frozenset[str]
    contributor_pairs: tuple[tuple[str, str], ...]
    conversations_by_language: dict[str, frozenset[str]] | None = None

    def is_valid_pair(self, user_id: str, agent_id: str) -> bool:
        return any(
            (a == user_id and b == agent_id) or (a == agent_id and b == user_id)
            for a, b in self.contributor_pairs
        )


def bilingual_data_from_dict(j: dict) -> BilingualData:
    """Accepts snake_case or camelCase keys."""
    codes = j.get("language_codes", j.get("languageCodes", []))
    pairs = j.get("contributor_pairs", j.get("contributorPairs", []))
    by_lang = j.get("conversations_by_language", j.get("conversationsByLanguage"))
    return BilingualData(
        language_codes=frozenset(str(c) for c in codes),
        contributor_pairs=tuple((str(p[0]), str(p[1])) for p in pairs if len(p) == 2),
        conversations_by_language=(
            {str(k): frozenset(str(c) for c in v) for k, v in by_lang.items()}
            if by_lang is not None else None
        ),
    )


def load_bilingual_data(path: str) -> BilingualData:
    with open(path, "r", encoding="utf-8") as f:
        return bilingual_data_from_dict(json.load(f))


def validate_script_match(filename: str, scripts: list[str] | None, speaker_id: str | None) -> FilenameValidation:
    """
    Check `<script>_<speakerId>.wav` against the supplied script names.

    Script names may carry a `.txt` suffix. Without scripts or a speaker
    id the check cannot run and yields a warning.
    """
    if not scripts:
        return FilenameValidation(Status.WARNING, issue="No script list available for filename validation")
    if not speaker_id:
        return FilenameValidation(Status.WARNING, issue="No speaker ID configured for filename validation")

    base_names = {re.sub(r"\.txt$", "", s.strip(), flags=re.IGNORECASE) for s in scripts}
    wav_name = filename.strip()
    name = _WAV_EXT.sub("", wav_name)
    possible_base = name.split(f"_{speaker_id}")[0]
    expected = f"{possible_base}_{speaker_id}.wav"

    if possible_base not in base_names:
        return FilenameValidation(Status.FAIL, issue="No matching script file found", expected_format="-")
    if wav_name != expected:
        return FilenameValidation(
            Status.FAIL, issue="Incorrect filename for existing script", expected_format=expected
        )
    return FilenameValidation(Status.PASS, expected_format=expected)


def _fail(issues: list[str], expected: str, spontaneous: bool) -> FilenameValidation:
    return FilenameValidation(Status.FAIL, issue="\n".join(issues), expected_format=expected, is_spontaneous=spontaneous)


def _validate_spontaneous(name: str, issues: list[str], data: BilingualData) -> FilenameValidation:
    if not name.startswith("SPONTANEOUS_"):
        issues.append('Unscripted recordings must start with "SPONTANEOUS_" (all caps)')
    m = _SPONTANEOUS.match(name)
    if not m:
        issues.append(f"Invalid unscripted format: expected {SPONTANEOUS_FORMAT[:-4]}")
        return _fail(issues, SPONTANEOUS_FORMAT, True)

    number, rest = m.group(1), m.group(2)
    if rest != rest.lower():
        issues.append('All text after "SPONTANEOUS_[number]-" must be lowercase')
    parts = rest.lower().split("-")
    if len(parts) != 5:
        issues.append(f"Invalid format: expected 5 parts after SPONTANEOUS_[number]-, got {len(parts)}")
        return _fail(issues, SPONTANEOUS_FORMAT, True)

    lang, user_label, user_id, agent_label, agent_id = parts
    if user_label != "user":
        issues.append(f"Expected 'user' label, got '{user_label}'")
    if agent_label != "agent":
        issues.append(f"Expected 'agent' label, got '{agent_label}'")
    if lang not in data.language_codes:
        issues.append(f"Invalid language code: '{lang}'")
    if not data.is_valid_pair(user_id, agent_id):
        issues.append(f"Invalid contributor pair: user-{user_id}, agent-{agent_id}")
    if issues:
        return _fail(issues, SPONTANEOUS_FORMAT, True)
    return FilenameValidation(
        Status.PASS,
        expected_format=f"SPONTANEOUS_{number}-{lang}-user-{user_id}-agent-{agent_id}.wav",
        is_spontaneous=True,
    )


def _validate_regular(name: str, issues: list[str], data: BilingualData) -> FilenameValidation:
    if name != name.lower():
        issues.append("Filename must be all lowercase")
    m = _REGULAR.match(name.lower())
    if not m:
        issues.append(f"Invalid format: expected {REGULAR_FORMAT[:-4]}")
        return _fail(issues, REGULAR_FORMAT, False)

    conversation_id, lang, user_id, agent_id = m.groups()
    if lang not in data.language_codes:
        issues.append(f"Invalid language code: '{lang}'")
    elif data.conversations_by_language is not None:
        if conversation_id not in data.conversations_by_language.get(lang, frozenset()):
            issues.append(f"Invalid conversation ID: '{conversation_id}' for language '{lang}'")
    if not data.is_valid_pair(user_id, agent_id):
        issues.append(f"Invalid contributor pair: user-{user_id}, agent-{agent_id}")
    if issues:
        return _fail(issues, REGULAR_FORMAT, False)
    return FilenameValidation(
        Status.PASS,
        expected_format=f"{conversation_id}-{lang}-user-{user_id}-agent-{agent_id}.wav",
        is_spontaneous=False,
    )


def validate_bilingual(filename: str, data: BilingualData | None) -> FilenameValidation:
    """
    Check the bilingual conversation naming convention.

    Accepts `<conversationId>-<lang>-user-<userId>-agent-<agentId>.wav`
    and `SPONTANEOUS_<n>-<lang>-user-<userId>-agent-<agentId>.wav`.
    All problems are reported together, one per line.
    """
    if data is None:
        return FilenameValidation(Status.WARNING, issue="No bilingual validation data available")

    issues: list[str] = []
    if filename != filename.strip():
        issues.append("Filename has leading or trailing whitespace")
    if re.search(r"\s", filename):
        issues.append("Filename contains whitespace characters")
    has_wav = bool(_WAV_EXT.search(filename))
    if not has_wav:
        issues.append("Filename must end with .wav extension")
    elif _ANY_EXT.search(_WAV_EXT.sub("", filename)):
        issues.append("Filename has multiple extensions (e.g., .mp3.wav or .wav.wav)")

    name = _ANY_EXT.sub("", filename)
    if name.upper().startswith("SPONTANEOUS_"):
        return _validate_spontaneous(name, issues, data)
    return _validate_regular(name, issues, data)


def validate_filename(
    filename: str,
    validation_type: str | None,
    *,
    scripts: list[str] | None = None,
    speaker_id: str | None = None,
    bilingual_data: BilingualData | None = None,
) -> FilenameValidation | None:
    """Dispatch on the criteria's filename validation type; None when not configured."""
    if validation_type is None:
        return None
    if validation_type == "script-match":
        return validate_script_match(filename, scripts, speaker_id)
    if validation_type == "bilingual-pattern":
        return validate_bilingual(filename, bilingual_data)
    return FilenameValidation(Status.WARNING, issue=f"Unknown filename validation type: {validation_type}")
