"""
LZM Chart Compiler - Pytest Configuration & Shared Fixtures

Provides reusable fixtures for:
- Sample chart source text (valid, broken, edge cases)
- A diagnostics collector
- Small helpers to build timelines and routed lines for unit tests
- Chart files on disk for the file-loading entry point

Expected timings for SAMPLE_CHART_VALID (120 BPM, 4/4 header defaults):

    measure 0: 4/4 @ 120, subdivision 4, start     0 ms, duration 2000 ms
    measure 1: 4/4 @  60, subdivision 4, start  2000 ms, duration 4000 ms
    measure 2: 3/4 @  60, subdivision 6, start  6000 ms, duration 3000 ms
    measure 3: 3/4 @  60, subdivision 6, start  9000 ms, duration 3000 ms
"""

from pathlib import Path

import pytest

from lzm_compiler.models import Header, TimeSignature
from lzm_compiler.services.diagnostics import Diagnostics
from lzm_compiler.services.lexer import tokenize
from lzm_compiler.services.sections import SectionStateMachine
from lzm_compiler.services.timeline import Timeline, build_timeline

# ---------------------------------------------------------------------------
# Sample chart content constants
# ---------------------------------------------------------------------------

SAMPLE_CHART_VALID = """\
// Tutorial chart
<header>
audio_filename=song.ogg
default_tempo=120
default_time_signature=4/4
audio_offset=-25

<notes>
[basic_1]
color=FF8800
[target]
color=#00FFFF

<animations>
[rise]
animation_type=t
duration=500
values={0,-2,0;0,0,0}

[spin]
animation_type=r
duration=250
values={0,90,0;0,0,0}

<chart_body>
[PR] (0;4) |-1;1|
[B1] (2) |1,0,2|
[E1] (3) |0| {rise}
--
tempo=60
[PRS] (0) |-1;1|
[HB2] (0;2) |0;0.5| {-0.5,1 : 0.5,1.5,0}
--
time_signature=3/4
subdivision=6
[PC] (0;6) |-1;1;-2;2| {-1.5,2 : -1.5,4;m}
[T] (3) |0.5|  // target in the middle of the bar
--
[PQ] (0;4) |-1;1;-1;1|
"""

SAMPLE_CHART_MINIMAL = """\
<header>
audio_filename=song.ogg
default_tempo=120
default_time_signature=4/4

<chart_body>
[B1] (2) |1,0,2|
"""

SAMPLE_CHART_UNDEFINED_ANIMATION = """\
<header>
audio_filename=song.ogg
default_tempo=120
default_time_signature=4/4

<chart_body>
[B1] (1) |0|
[E1] (4) |0| {anim_a}
[B2] (3) |1|
"""

SAMPLE_CHART_BAR_SKIP = """\
<header>
audio_filename=song.ogg
default_tempo=120
default_time_signature=4/4

<chart_body>
[HB1] (2;3.5,8) |0|
[B1] (0) |0|
--
--
--
"""

SAMPLE_CHART_NO_HEADER = """\
<chart_body>
[B1] (0) |0|
--
[B2] (1) |0|
"""

SAMPLE_CHART_TRAILING_STATIC = """\
<header>
audio_filename=song.ogg
default_tempo=120
default_time_signature=4/4

<chart_body>
[PR] (0;4) |-1;1|
--
[PRS] (1) |-2;2|
[B1] (2) |0|
"""

SAMPLE_CHART_BROKEN_LINES = """\
<header>
audio_filename=song.ogg
default_tempo=120
default_time_signature=4/4
difficulty=hard
this is not a chart line

<notes>
[basic_9]
color=FF0000
[basic_2]
color=XYZ

<animations>
[wobble]
animation_type=q
duration=100
values={0;1}

<chart_body>
[ZZ] (0) |0|
[B1] (x) |0|
[B1] (0;1) |0|
[B3] (1) |0|
"""


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def diagnostics() -> Diagnostics:
    """A fresh diagnostics collector."""
    return Diagnostics("test.lzm")


@pytest.fixture
def header_120() -> Header:
    """Header with 120 BPM and 4/4 defaults."""
    return Header("song.ogg", 120, TimeSignature(4, 4), 0)


def route(text: str, diagnostics: Diagnostics):
    """Tokenize and route *text*; returns the RoutedSource."""
    return SectionStateMachine(diagnostics).route(tokenize(text))


def timeline_from_body(body: str, header: Header, diagnostics: Diagnostics) -> Timeline:
    """Build a timeline from bare chart body lines (no section heading needed)."""
    routed = route("<chart_body>\n" + body, diagnostics)
    return build_timeline(routed.chart_body, header, diagnostics)


@pytest.fixture
def sample_chart_file(tmp_path: Path) -> Path:
    """Write SAMPLE_CHART_VALID to disk with a UTF-8 BOM."""
    p = tmp_path / "tutorial.lzm"
    p.write_text(SAMPLE_CHART_VALID, encoding="utf-8-sig")
    return p
