"""
Prompts for strategy plan generation.

The model receives locally computed numbers only; it interprets them.
Rule engine candidates are passed as suggested seeds so the plan cites
concrete figures.
"""

from config import settings

RATING_ENUM = ["rendah", "sedang", "tinggi"]
UMKM_LEVEL_ENUM = ["mikro", "kecil", "menengah", "besar"]


# Output contract (JSON Schema). minItems/maxItems are also enforced locally.
STRATEGY_PLAN_SCHEMA = {
    "type": "object",
    "properties": {
        "umkmLevel": {"type": "string", "enum": UMKM_LEVEL_ENUM},
        "diagnosis": {"type": "array", "items": {"type": "string"}},
        "quickWins": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "impact": {"type": "string", "enum": RATING_ENUM},
                    "effort": {"type": "string", "enum": RATING_ENUM},
                    "action": {"type": "string"},
                    "notes": {"type": "string"},
                },
                "required": ["title", "impact", "effort", "action"],
            },
            "minItems": settings.quick_wins_min,
            "maxItems": settings.quick_wins_max,
        },
        "initiatives": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "owner": {"type": "string"},
                    "startMonth": {"type": "string", "pattern": "^\\d{4}-\\d{2}$"},
                    "kpi": {"type": "string"},
                    "target": {"type": "string"},
                    "notes": {"type": "string"},
                },
                "required": ["title", "description", "owner", "startMonth", "kpi", "target"],
            },
            "minItems": settings.initiatives_min,
            "maxItems": settings.initiatives_max,
        },
        "risks": {"type": "array", "items": {"type": "string"}},
        "assumptions": {"type": "array", "items": {"type": "string"}},
        "dataGaps": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["umkmLevel", "diagnosis", "quickWins", "initiatives"],
}


SYSTEM_PROMPT = """Kamu adalah konsultan strategi bisnis untuk UMKM di Indonesia.

Aturan:
- Gunakan HANYA angka dari data yang diberikan. Jangan mengarang angka.
- Setiap diagnosis dan target harus menyebut angka konkret (Rp, %, bulan).
- Tulis dalam Bahasa Indonesia yang singkat dan praktis.
- Jawab HANYA dengan satu objek JSON yang valid sesuai skema. Tanpa markdown, tanpa penjelasan.
"""


PLAN_PROMPT = """Susun rencana strategis untuk bisnis berikut.

## Data bulanan (Rp)
{months_table}

## Konteks analisis (JSON)
{context_json}

## Kandidat dari analisis berbasis aturan (gunakan sebagai titik awal, boleh diperbaiki)
{seeds_json}

## Ketentuan
- startMonth inisiatif dalam format YYYY-MM, mulai setelah {end_month}.
- impact dan effort hanya: rendah, sedang, tinggi.
- umkmLevel: {umkm_level}.

## Skema output (JSON Schema)
{schema_json}
"""


REPAIR_PROMPT = (
    "Jawabanmu berisi JSON yang tidak valid. "
    "Berikan HANYA JSON yang sudah diperbaiki, tanpa penjelasan dan tanpa markdown."
)
