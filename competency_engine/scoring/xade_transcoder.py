# competency_engine/scoring/xade_transcoder.py
"""
XADE Transcoder
---------------
Turns criterion evaluations (0–4) into the 5-symbol code set imported by
XADE, one column per subject area, and renders the delimited import table.

Breakpoints on the per-column mean:
    mean ≤ 0 or < 2.0 → IN
    < 2.5             → SU
    < 3.0             → BI
    < 3.6             → NT
    otherwise         → SB

Area resolution: the criterion's free-text area is normalized (lower-case,
no diacritics, single spaces) and matched by substring against each column's
keywords, in column precedence order. Unmatched areas are left out of the
table and reported back in ``unmapped_areas``; they never fail the export.

Output:
    NIA;Alumno;Curso;Linguas_G;Lingua_C;Matematicas;C_Naturais;C_Sociais;Artística;E_Fisica;Valores
"""

import csv
import io
import re
import unicodedata
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import structlog

from competency_engine.core.exceptions import InvalidExportConfigException
from competency_engine.models.curriculum import Criterion
from competency_engine.models.enumerations import XadeCode, XadeColumn
from competency_engine.models.evaluation import CriterionEvaluation
from competency_engine.models.roster import Classroom, Student
from competency_engine.scoring.utils import mean, to_decimal

logger = structlog.get_logger(__name__)

DEFAULT_DELIMITER = ";"

DEFAULT_XADE_COLUMNS: Tuple[XadeColumn, ...] = tuple(XadeColumn)

# (threshold, code): first threshold the mean is below wins.
_XADE_BREAKPOINTS: Tuple[Tuple[Decimal, XadeCode], ...] = (
    (Decimal("2.0"), XadeCode.IN),
    (Decimal("2.5"), XadeCode.SU),
    (Decimal("3.0"), XadeCode.BI),
    (Decimal("3.6"), XadeCode.NT),
)

# ---------------------------------------------------------------------------
# AREA KEYWORDS
# Matched against the normalized area text, in this order. Earlier columns
# win, e.g. "Ciencias Sociais" → C_Sociais before "social e civica" → Valores.
# Keywords are written already normalized (no accents, lower-case).
# ---------------------------------------------------------------------------
AREA_KEYWORDS: Tuple[Tuple[XadeColumn, Tuple[str, ...]], ...] = (
    (XadeColumn.LINGUAS_G, ("galeg", "lingua galega")),
    (XadeColumn.LINGUA_C, (
        "castellan",
        "castela",
        "lengua castell",
        "lengua espanola",
    )),
    (XadeColumn.MATEMATICAS, ("matematic",)),
    (XadeColumn.C_NATURAIS, ("natur",)),
    (XadeColumn.C_SOCIAIS, ("social", "sociais")),
    (XadeColumn.E_FISICA, (
        "educacion fisica",
        "e. fisica",
        "e.f.",
        "fisic",
    )),
    (XadeColumn.ARTISTICA, ("artist", "musica", "plast", "visual")),
    (XadeColumn.VALORES, ("valor", "etica", "etico", "civic")),
)


def normalize_text(raw: Optional[str]) -> str:
    """Lower-case, strip diacritics and collapse whitespace."""
    text = unicodedata.normalize("NFD", str(raw or "").strip().lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return re.sub(r"\s+", " ", text)


def conversion_xade(media: Union[float, Decimal, None]) -> XadeCode:
    """Transcode a 0–4 mean to its XADE code. Invalid input is IN."""
    m = to_decimal(media)
    if m <= 0:
        return XadeCode.IN
    for threshold, code in _XADE_BREAKPOINTS:
        if m < threshold:
            return code
    return XadeCode.SB


def area_to_column(area: Optional[str]) -> Optional[XadeColumn]:
    """Resolve a free-text curriculum area to its export column, or None."""
    a = normalize_text(area)
    if not a:
        return None
    for column, keywords in AREA_KEYWORDS:
        if any(kw in a for kw in keywords):
            return column
    return None


def course_for_xade(classroom: Classroom) -> str:
    """First '5' or '6' in the classroom grade label; otherwise the label itself."""
    raw = (classroom.grade or "").strip()
    match = re.search(r"[56]", raw)
    return match.group(0) if match else raw


def student_label(student: Student) -> str:
    """'Surname, Given' as XADE lists students."""
    last = student.last_name.strip()
    first = student.first_name.strip()
    if last and first:
        return f"{last}, {first}"
    return f"{last}{first}".strip()


def _sort_key(student: Student) -> Tuple[int, str, str]:
    return (
        student.list_number,
        normalize_text(student.last_name),
        normalize_text(student.first_name),
    )


@dataclass
class XadeExport:
    """Output of XadeTranscoder.generate()."""
    text: str                                  # delimited table, no trailing newline
    unmapped_areas: List[str] = field(default_factory=list)
    row_count: int = 0                         # data rows (students)


class XadeTranscoder:
    """Build the XADE grade import table for one classroom."""

    def __init__(
        self,
        delimiter: str = DEFAULT_DELIMITER,
        columns: Optional[Sequence[XadeColumn]] = None,
    ):
        if len(delimiter) != 1 or delimiter in ('"', "\n", "\r"):
            raise InvalidExportConfigException(
                f"Delimiter must be a single character other than a quote or line break, got {delimiter!r}"
            )
        self.delimiter = delimiter
        self.columns: Tuple[XadeColumn, ...] = tuple(XadeColumn(c) for c in (columns or DEFAULT_XADE_COLUMNS))
        if not self.columns:
            raise InvalidExportConfigException("At least one export column is required")

    conversion = staticmethod(conversion_xade)
    area_to_column = staticmethod(area_to_column)

    # ------------------------------------------------------------------ #
    # Area checks                                                          #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _area_by_criterion(criteria: Iterable[Criterion]) -> Dict[str, str]:
        return {c.id: c.area for c in criteria if c.id}

    def find_unmapped_areas(
        self,
        criteria: Iterable[Criterion],
        evaluations: Iterable[CriterionEvaluation],
    ) -> List[str]:
        """
        Distinct evaluated area names that map to no export column.

        Only areas that actually have evaluations are reported, sorted
        ignoring case and accents.
        """
        area_by_id = self._area_by_criterion(criteria)
        used: List[str] = []
        for ev in evaluations:
            area = area_by_id.get(ev.criterion_id, "").strip()
            if area and area not in used:
                used.append(area)

        unmapped = [a for a in used if area_to_column(a) is None]
        return sorted(unmapped, key=lambda a: (normalize_text(a), a))

    # ------------------------------------------------------------------ #
    # Aggregation                                                          #
    # ------------------------------------------------------------------ #

    def column_averages(
        self,
        students: Sequence[Student],
        criteria: Iterable[Criterion],
        evaluations: Iterable[CriterionEvaluation],
    ) -> Dict[str, Dict[XadeColumn, Decimal]]:
        """
        Unweighted mean of the matched scores per (student, column).

        Evaluations of students outside ``students``, of unknown criteria,
        of unmapped areas, or with a non-positive score (not evaluated)
        are skipped. Columns without evidence are absent.
        """
        area_by_id = self._area_by_criterion(criteria)
        student_ids = {s.id for s in students}
        scores: Dict[str, Dict[XadeColumn, List[Decimal]]] = {}

        for ev in evaluations:
            if ev.student_id not in student_ids:
                continue
            column = area_to_column(area_by_id.get(ev.criterion_id, ""))
            if column is None:
                continue
            score = to_decimal(ev.score)
            if score <= 0:
                continue
            scores.setdefault(ev.student_id, {}).setdefault(column, []).append(score)

        return {
            sid: {col: mean(values) for col, values in by_col.items()}
            for sid, by_col in scores.items()
        }

    # ------------------------------------------------------------------ #
    # Rendering                                                            #
    # ------------------------------------------------------------------ #

    def _render_row(self, cells: Sequence[str]) -> str:
        """
        One delimited row, without its line ending.

        With "\\r\\n" as terminator the csv module quotes any field holding
        a bare \\r or \\n; the terminator itself is then dropped.
        """
        buffer = io.StringIO()
        writer = csv.writer(
            buffer,
            delimiter=self.delimiter,
            quotechar='"',
            quoting=csv.QUOTE_MINIMAL,
            lineterminator="\r\n",
        )
        writer.writerow(cells)
        return buffer.getvalue()[:-2]

    def generate(
        self,
        classroom: Classroom,
        students: Sequence[Student],
        criteria: Sequence[Criterion],
        evaluations: Sequence[CriterionEvaluation],
    ) -> XadeExport:
        """
        Render the XADE import table.

        Args:
            classroom: Provides the course label.
            students: Roster; one row each, ordered by list number then name.
            criteria: Criteria with their area text.
            evaluations: Criterion evaluations (0–4).

        Returns:
            XadeExport with the table text and the unmapped area names.
        """
        averages = self.column_averages(students, criteria, evaluations)
        unmapped = self.find_unmapped_areas(criteria, evaluations)
        course = course_for_xade(classroom)

        lines = [self._render_row(["NIA", "Alumno", "Curso", *[c.value for c in self.columns]])]

        ordered = sorted(students, key=_sort_key)
        for student in ordered:
            by_col = averages.get(student.id, {})
            cells = [
                conversion_xade(by_col[col]).value if col in by_col else ""
                for col in self.columns
            ]
            lines.append(self._render_row([student.nia or "", student_label(student), course, *cells]))

        text = "\n".join(lines)

        if unmapped:
            logger.warning(
                "xade_unmapped_areas",
                classroom_id=classroom.id,
                unmapped_areas=unmapped,
            )
        logger.info(
            "xade_export_generated",
            classroom_id=classroom.id,
            rows=len(ordered),
            columns=len(self.columns),
            unmapped=len(unmapped),
        )

        return XadeExport(text=text, unmapped_areas=unmapped, row_count=len(ordered))
