"""
Hearth Butler Backend — Medical Report Parser
===============================================

What:  Extracts lab indicators and report metadata from OCR text.
How:   Each indicator has label patterns (Chinese and common English
       abbreviations), a unit pattern, a normal range and critical limits.
       Only the first match per indicator counts. Pure functions, no I/O.

Classification order:
    CRITICAL  above critical_above / below critical_below
    HIGH      above normal_max (at or above when high_inclusive)
    LOW       below normal_min
    NORMAL    otherwise
"""

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from hearth.models.enums import IndicatorStatus, IndicatorType

MAX_VALUE = 10_000

_VALUE = r"(\d+(?:\.\d+)?)"
_SEP = r"\s*(?:[（(][^）)]*[）)])?\s*[：:]?\s*"

MMOL = r"mmol\s*/\s*L"
UMOL = r"[μµu]mol\s*/\s*L"
U_L = r"U\s*/\s*L"
G_L = r"g\s*/\s*L"
PERCENT = r"%"
E9_L = r"(?:[×xX*]\s*)?10\s*(?:\^\s*9|⁹)\s*/\s*L"
E12_L = r"(?:[×xX*]\s*)?10\s*(?:\^\s*12|¹²)\s*/\s*L"


@dataclass(frozen=True)
class IndicatorDefinition:
    type: IndicatorType
    name: str
    labels: Tuple[str, ...]
    unit: str
    unit_pattern: str
    normal_min: Optional[float] = None
    normal_max: Optional[float] = None
    critical_above: Optional[float] = None
    critical_below: Optional[float] = None
    critical_inclusive: bool = False
    high_inclusive: bool = False

    @property
    def pattern(self) -> Pattern[str]:
        # Longest labels first so "红细胞计数" wins over "红细胞"
        labels = "|".join(re.escape(l) for l in sorted(self.labels, key=len, reverse=True))
        return re.compile(
            rf"(?<![A-Za-z])(?:{labels}){_SEP}{_VALUE}\s*{self.unit_pattern}",
            re.IGNORECASE,
        )

    @property
    def reference_range(self) -> str:
        if self.normal_min is not None and self.normal_max is not None:
            return f"{_fmt(self.normal_min)}-{_fmt(self.normal_max)} {self.unit}"
        if self.normal_min is not None:
            return f"≥{_fmt(self.normal_min)} {self.unit}"
        if self.normal_max is not None:
            return f"<{_fmt(self.normal_max)} {self.unit}"
        return ""

    def classify(self, value: float) -> IndicatorStatus:
        if self.critical_above is not None and (
            value >= self.critical_above if self.critical_inclusive else value > self.critical_above
        ):
            return IndicatorStatus.CRITICAL
        if self.critical_below is not None and value < self.critical_below:
            return IndicatorStatus.CRITICAL
        if self.normal_max is not None and (
            value >= self.normal_max if self.high_inclusive else value > self.normal_max
        ):
            return IndicatorStatus.HIGH
        if self.normal_min is not None and value < self.normal_min:
            return IndicatorStatus.LOW
        return IndicatorStatus.NORMAL


def _fmt(value: float) -> str:
    return f"{value:g}"


INDICATOR_DEFINITIONS: Tuple[IndicatorDefinition, ...] = (
    # ── Lipids ────────────────────────────────────────────────────────────
    IndicatorDefinition(
        IndicatorType.TOTAL_CHOLESTEROL, "总胆固醇",
        ("总胆固醇", "TC", "CHOL", "Total Cholesterol"), "mmol/L", MMOL,
        normal_max=5.2, critical_above=6.2,
    ),
    IndicatorDefinition(
        IndicatorType.LDL_CHOLESTEROL, "低密度脂蛋白胆固醇",
        ("低密度脂蛋白胆固醇", "低密度脂蛋白", "LDL-C", "LDL"), "mmol/L", MMOL,
        normal_max=3.4, critical_above=4.1,
    ),
    IndicatorDefinition(
        IndicatorType.HDL_CHOLESTEROL, "高密度脂蛋白胆固醇",
        ("高密度脂蛋白胆固醇", "高密度脂蛋白", "HDL-C", "HDL"), "mmol/L", MMOL,
        normal_min=1.0,
    ),
    IndicatorDefinition(
        IndicatorType.TRIGLYCERIDES, "甘油三酯",
        ("甘油三酯", "TG", "TRIG", "Triglycerides"), "mmol/L", MMOL,
        normal_max=1.7, critical_above=2.3,
    ),
    # ── Glucose ───────────────────────────────────────────────────────────
    IndicatorDefinition(
        IndicatorType.FASTING_GLUCOSE, "空腹血糖",
        ("空腹血糖", "空腹葡萄糖", "FBG", "GLU", "Fasting Glucose"), "mmol/L", MMOL,
        normal_min=3.9, normal_max=6.1, critical_above=7.0, critical_below=3.0,
        critical_inclusive=True, high_inclusive=True,
    ),
    IndicatorDefinition(
        IndicatorType.POSTPRANDIAL_GLUCOSE, "餐后血糖",
        ("餐后2小时血糖", "餐后血糖", "PPG", "2hPG"), "mmol/L", MMOL,
        normal_max=7.8, critical_above=11.1, critical_inclusive=True,
    ),
    IndicatorDefinition(
        IndicatorType.GLYCATED_HEMOGLOBIN, "糖化血红蛋白",
        ("糖化血红蛋白", "HbA1c", "GHb"), "%", PERCENT,
        normal_max=6.5, critical_above=8.0, critical_inclusive=True,
    ),
    # ── Liver ─────────────────────────────────────────────────────────────
    IndicatorDefinition(
        IndicatorType.ALT, "丙氨酸氨基转移酶",
        ("丙氨酸氨基转移酶", "谷丙转氨酶", "ALT"), "U/L", U_L,
        normal_max=40, critical_above=120,
    ),
    IndicatorDefinition(
        IndicatorType.AST, "天门冬氨酸氨基转移酶",
        ("天门冬氨酸氨基转移酶", "谷草转氨酶", "AST"), "U/L", U_L,
        normal_max=40, critical_above=120,
    ),
    IndicatorDefinition(
        IndicatorType.TOTAL_BILIRUBIN, "总胆红素",
        ("总胆红素", "TBIL", "TB"), "μmol/L", UMOL,
        normal_max=21, critical_above=34,
    ),
    IndicatorDefinition(
        IndicatorType.DIRECT_BILIRUBIN, "直接胆红素",
        ("直接胆红素", "DBIL", "DB"), "μmol/L", UMOL,
        normal_max=6.8, critical_above=10,
    ),
    IndicatorDefinition(
        IndicatorType.ALP, "碱性磷酸酶",
        ("碱性磷酸酶", "ALP"), "U/L", U_L,
        normal_min=40, normal_max=150, critical_above=300, critical_below=30,
    ),
    # ── Kidney ────────────────────────────────────────────────────────────
    IndicatorDefinition(
        IndicatorType.SERUM_CREATININE, "肌酐",
        ("血肌酐", "肌酐", "CREATININE", "CREA", "Cr"), "μmol/L", UMOL,
        normal_max=133, critical_above=200,
    ),
    IndicatorDefinition(
        IndicatorType.BLOOD_UREA_NITROGEN, "尿素氮",
        ("尿素氮", "BUN", "UREA"), "mmol/L", MMOL,
        normal_max=7.1, critical_above=10,
    ),
    IndicatorDefinition(
        IndicatorType.URIC_ACID, "尿酸",
        ("尿酸", "UA", "URIC"), "μmol/L", UMOL,
        normal_max=420, critical_above=600,
    ),
    # ── Blood count ───────────────────────────────────────────────────────
    IndicatorDefinition(
        IndicatorType.WHITE_BLOOD_CELL, "白细胞",
        ("白细胞计数", "白细胞", "WBC"), "×10^9/L", E9_L,
        normal_min=4.0, normal_max=10.0, critical_above=15, critical_below=2,
    ),
    IndicatorDefinition(
        IndicatorType.RED_BLOOD_CELL, "红细胞",
        ("红细胞计数", "红细胞", "RBC"), "×10^12/L", E12_L,
        normal_min=4.0, normal_max=5.5, critical_above=6, critical_below=3,
    ),
    IndicatorDefinition(
        IndicatorType.HEMOGLOBIN, "血红蛋白",
        ("血红蛋白", "HGB", "Hb"), "g/L", G_L,
        normal_min=120, normal_max=160, critical_above=180, critical_below=80,
    ),
    IndicatorDefinition(
        IndicatorType.PLATELET, "血小板",
        ("血小板计数", "血小板", "PLT"), "×10^9/L", E9_L,
        normal_min=100, normal_max=300, critical_above=500, critical_below=50,
    ),
)

DEFINITIONS_BY_TYPE: Dict[str, IndicatorDefinition] = {
    d.type.value: d for d in INDICATOR_DEFINITIONS
}

_DATE_PATTERNS = (
    re.compile(r"(\d{4})\s*年\s*(\d{1,2})\s*月\s*(\d{1,2})\s*日"),
    re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})"),
    re.compile(r"(\d{4})/(\d{1,2})/(\d{1,2})"),
)

_INSTITUTION_PATTERNS = (
    re.compile(r"([一-龥]+医院)"),
    re.compile(r"([一-龥]+体检中心)"),
    re.compile(r"([一-龥]*医疗[一-龥]*)"),
)

_REPORT_TYPES = (
    ("体检报告", "体检报告"),
    ("血常规", "血常规"),
    ("生化", "生化检查"),
)


@dataclass
class ParsedIndicator:
    indicator_type: str
    name: str
    value: float
    unit: str
    reference_range: str
    status: str

    @property
    def is_abnormal(self) -> bool:
        return self.status != IndicatorStatus.NORMAL.value


@dataclass
class ParsedReport:
    indicators: List[ParsedIndicator] = field(default_factory=list)
    report_date: Optional[date] = None
    institution: Optional[str] = None
    report_type: Optional[str] = None


def classify_indicator(indicator_type: str, value: float) -> str:
    """Status for a value of a known indicator; OTHER and unknown types are NORMAL."""
    definition = DEFINITIONS_BY_TYPE.get(indicator_type)
    if definition is None:
        return IndicatorStatus.NORMAL.value
    return definition.classify(value).value


def extract_indicators(
    text: str, definitions: Sequence[IndicatorDefinition] = INDICATOR_DEFINITIONS
) -> List[ParsedIndicator]:
    indicators = []
    for definition in definitions:
        for match in definition.pattern.finditer(text):
            value = float(match.group(1))
            if not 0 <= value <= MAX_VALUE:
                continue
            indicators.append(ParsedIndicator(
                indicator_type=definition.type.value,
                name=definition.name,
                value=value,
                unit=definition.unit,
                reference_range=definition.reference_range,
                status=definition.classify(value).value,
            ))
            break
    return indicators


def extract_report_date(text: str) -> Optional[date]:
    for pattern in _DATE_PATTERNS:
        for match in pattern.finditer(text):
            year, month, day = (int(g) for g in match.groups())
            try:
                return date(year, month, day)
            except ValueError:
                continue
    return None


def extract_institution(text: str) -> Optional[str]:
    for pattern in _INSTITUTION_PATTERNS:
        match = pattern.search(text)
        if match and len(match.group(1)) >= 2:
            return match.group(1)
    return None


def extract_report_type(text: str) -> Optional[str]:
    for keyword, report_type in _REPORT_TYPES:
        if keyword in text:
            return report_type
    return None


def parse(text: str) -> ParsedReport:
    return ParsedReport(
        indicators=extract_indicators(text),
        report_date=extract_report_date(text),
        institution=extract_institution(text),
        report_type=extract_report_type(text),
    )


def validate(parsed: ParsedReport) -> Tuple[bool, List[str]]:
    errors = []
    if not parsed.indicators:
        errors.append("No health indicators were recognised in the report")
    return not errors, errors
