"""Built-in criteria presets, keyed by preset id."""
from __future__ import annotations


PRESETS = {
    "auditions-character-recordings": {
        "label": "Auditions: Character Recordings",
        "file_type": ["wav"],
        "sample_rate": [48000],
        "bit_depth": [24],
        "channels": [1],
        "min_duration": 120,
    },
    "auditions-studio-ai": {
        "label": "Auditions: Studio AI",
        "file_type": ["wav"],
        "sample_rate": [48000],
        "bit_depth": [24],
        "channels": [1],
        "min_duration": 120,
    },
    "auditions-bilingual-partner": {
        "label": "Auditions: Bilingual Partner",
        "file_type": ["wav"],
        "sample_rate": [48000],
        "bit_depth": [24],
        "channels": [1],
        "min_duration": 150,
    },
    "auditions-emotional-voice": {
        "label": "Auditions: Emotional Voice",
        "file_type": ["wav"],
        "sample_rate": [48000],
        "bit_depth": [16, 24],
        "channels": [1, 2],
        "min_duration": 5,
    },
    "character-recordings": {
        "label": "Character Recordings",
        "file_type": ["wav"],
        "sample_rate": [48000],
        "bit_depth": [24],
        "channels": [1],
    },
    "p2b2-pairs-mono": {
        "label": "P2B2 Pairs (Mono)",
        "file_type": ["wav"],
        "sample_rate": [44100, 48000],
        "bit_depth": [16, 24],
        "channels": [1],
    },
    "p2b2-pairs-stereo": {
        "label": "P2B2 Pairs (Stereo)",
        "file_type": ["wav"],
        "sample_rate": [44100, 48000],
        "bit_depth": [16, 24],
        "channels": [2],
        "stereo_type": ["Conversational Stereo"],
        "max_overlap_warning": 3,
        "max_overlap_fail": 8,
        "max_overlap_segment_warning": 2,
        "max_overlap_segment_fail": 5,
    },
    # stereo_type only applies to the 2-channel files of this mix
    "p2b2-pairs-mixed": {
        "label": "P2B2 Pairs (Mixed)",
        "file_type": ["wav"],
        "sample_rate": [44100, 48000],
        "bit_depth": [16, 24],
        "channels": [1, 2],
        "stereo_type": ["Conversational Stereo"],
        "max_overlap_warning": 3,
        "max_overlap_fail": 8,
        "max_overlap_segment_warning": 2,
        "max_overlap_segment_fail": 5,
    },
    "three-hour": {
        "label": "Three Hour",
        "file_type": ["wav"],
        "sample_rate": [48000],
        "bit_depth": [24],
        "channels": [1],
        "filename_validation": "script-match",
    },
    "bilingual-conversational": {
        "label": "Bilingual Conversational",
        "file_type": ["wav"],
        "sample_rate": [48000],
        "bit_depth": [16, 24],
        "channels": [2],
        "filename_validation": "bilingual-pattern",
        "stereo_type": ["Conversational Stereo"],
        "max_overlap_warning": 5,
        "max_overlap_fail": 10,
        "max_overlap_segment_warning": 2,
        "max_overlap_segment_fail": 5,
    },
    "custom": {
        "label": "Custom",
    },
}
