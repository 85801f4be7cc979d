"""
Gradio UI components for UMKM Strategi.

Interface:
1. Import transactions (user ID + CSV/Excel file)
2. Strategy: months-back slider, AI/local toggle, generate button
3. Results: diagnosis, quick wins by priority, initiatives, risks
"""

from typing import Optional
import gradio as gr
import logging

from config import settings
from core.analyzer import run_strategy_analysis
from core.display import format_strategy_display, sort_by_priority
from core.fallback import format_rp
from core.importer import import_transactions
from data.models import ImportRun, PlanSource, StrategyResult
from data.parser import ParseError
from errors import StrategyError
from llm.provider import PlanProvider, get_plan_provider
from store.base import StrategyStore
from store.memory import InMemoryStore

logger = logging.getLogger(__name__)

SOURCE_BADGES = {
    PlanSource.AI: ("🤖 AI", "badge-ai"),
    PlanSource.FALLBACK: ("🧮 Lokal (rule-based)", "badge-local"),
    PlanSource.CACHE: ("💾 Cache", "badge-cache"),
}

PRIORITY_LABELS = {"high": "High Priority", "medium": "Medium", "low": "Low"}


def create_app(
    store: Optional[StrategyStore] = None,
    provider: Optional[PlanProvider] = None,
) -> gr.Blocks:
    """
    Builds the Gradio application.

    Args:
        store: storage backend (default: a fresh InMemoryStore)
        provider: AI plan provider (default: from settings, None without an API key)

    Returns:
        gr.Blocks: ready-to-launch app
    """
    if store is None:
        store = InMemoryStore()
    if provider is None:
        provider = get_plan_provider()

    if provider is None:
        logger.info("AI provider not configured, plans will be generated locally")

    with gr.Blocks(title="UMKM Strategi: Rencana Bisnis") as app:

        # === Header ===
        gr.Markdown("""
        # 📊 UMKM Strategi
        ### Rencana strategi dari data transaksi Anda

        Impor transaksi, lalu buat rencana aksi 1-3 bulan
        """)

        # === Step 1: import ===
        gr.Markdown("### 1️⃣ Impor transaksi")

        with gr.Row():
            with gr.Column(scale=2):
                user_input = gr.Textbox(
                    label="👤 User ID",
                    placeholder="mis. toko-sari-01",
                    max_lines=1
                )

                file_input = gr.File(
                    label="📁 File transaksi (date,type,category,amountRp[,notes])",
                    file_types=[".csv", ".xlsx", ".xls"],
                    type="filepath",
                    elem_classes=["file-upload"]
                )

                import_btn = gr.Button(
                    "📥 Impor",
                    variant="secondary",
                    elem_classes=["secondary-btn"]
                )

                import_output = gr.Markdown(elem_classes=["import-box"])

        # === Step 2: strategy ===
        gr.Markdown("### 2️⃣ Buat strategi")

        with gr.Row():
            months_input = gr.Slider(
                minimum=settings.min_analysis_months,
                maximum=24,
                value=settings.default_months_back,
                step=1,
                label="📅 Jumlah bulan dianalisis"
            )
            use_ai_input = gr.Checkbox(
                value=provider is not None,
                interactive=provider is not None,
                label="🤖 Gunakan AI (matikan untuk rencana lokal)"
            )

        generate_btn = gr.Button(
            "🧭 Buat Rencana",
            variant="primary",
            size="lg",
            elem_classes=["primary-btn"]
        )

        gr.Markdown(
            f"*Rencana AI bisa memakan waktu hingga {settings.llm_total_timeout_seconds} detik*",
            elem_classes=["hint-text"]
        )

        # === Results (hidden until generated) ===
        with gr.Column(visible=False, elem_classes=["results-section"]) as results_section:
            badge_output = gr.Markdown()

            gr.Markdown("### 🩺 Diagnosis")
            diagnosis_output = gr.Markdown()

            gr.Markdown("### ⚡ Quick wins")
            quick_wins_output = gr.Markdown()

            gr.Markdown("### 🗺️ Inisiatif")
            initiatives_output = gr.Markdown()

            extras_output = gr.Markdown(elem_classes=["warnings-box"])

        # === Handlers ===
        def on_import(user_id: str, file_path: str):
            """Import button handler."""

            if not file_path:
                gr.Warning("Silakan pilih file transaksi")
                return ""

            try:
                run = import_transactions(store, user_id.strip() or None, file_path)
                return _format_import(run)

            except (StrategyError, ParseError) as e:
                message = e.user_message if isinstance(e, StrategyError) else str(e)
                logger.warning(f"Import rejected: {message}")
                gr.Warning(message)
                return f"⚠️ {message}"

            except Exception as e:
                logger.error(f"Import failed: {e}", exc_info=True)
                return "❌ Impor gagal, coba lagi"

        def on_generate(user_id: str, months_back: float, use_ai: bool):
            """Generate button handler."""

            result = run_strategy_analysis(
                int(months_back),
                user_id=user_id.strip() or None,
                store=store,
                provider=provider,
                force_provider=None if use_ai else "local",
            )

            if not result.success:
                gr.Warning(result.error)
                return {
                    results_section: gr.update(visible=True),
                    badge_output: "",
                    diagnosis_output: f"⚠️ {result.error}",
                    quick_wins_output: "—",
                    initiatives_output: "—",
                    extras_output: "",
                }

            display = format_strategy_display(result.plan)

            return {
                results_section: gr.update(visible=True),
                badge_output: _format_badge(result),
                diagnosis_output: "\n".join(f"- {line}" for line in display["diagnosis"]),
                quick_wins_output: _format_quick_wins(display["quickWins"]),
                initiatives_output: _format_initiatives(display["initiatives"]),
                extras_output: _format_extras(display),
            }

        import_btn.click(
            fn=on_import,
            inputs=[user_input, file_input],
            outputs=[import_output]
        )

        generate_btn.click(
            fn=on_generate,
            inputs=[user_input, months_input, use_ai_input],
            outputs=[
                results_section,
                badge_output,
                diagnosis_output,
                quick_wins_output,
                initiatives_output,
                extras_output
            ]
        )

    return app


def _format_import(run: ImportRun) -> str:
    lines = [f"✅ **{run.total_imported}** dari {run.total_rows} transaksi diimpor dari `{run.filename}`"]
    for w in run.warnings:
        lines.append(f"- ⚠️ {w}")
    return "\n".join(lines)


def _format_badge(result: StrategyResult) -> str:
    label, css_class = SOURCE_BADGES.get(result.source, ("❓", "badge-local"))
    meta = result.meta
    details = []
    if meta is not None:
        if meta.model:
            details.append(f"model: {meta.model}")
        if meta.months_used:
            details.append(f"{meta.months_used} bulan")
    if result.context is not None:
        turnover = sum(m.sales_rp for m in result.context.months)
        details.append(f"omzet periode: {format_rp(turnover)}")
    suffix = f" · {' · '.join(details)}" if details else ""
    return f'<span class="source-badge {css_class}">{label}</span>{suffix}'


def _format_quick_wins(quick_wins: list[dict]) -> str:
    """
    Quick wins as Markdown cards, high priority first.
    """
    parts = []

    for qw in sort_by_priority(quick_wins):
        notes_line = f"\n\n📝 {qw['notes']}" if qw.get("notes") else ""
        parts.append(f"""
<div class="priority-{qw['priority']}">

**{qw['title']}** · *{PRIORITY_LABELS[qw['priority']]}*

Impact: {qw['impact']} {qw['impactIcon']} · Effort: {qw['effort']} {qw['effortIcon']}

→ {qw['action']}{notes_line}

</div>
""")

    return "\n".join(parts)


def _format_initiatives(initiatives: list[dict]) -> str:
    rows = ["| Mulai | Inisiatif | Owner | KPI | Target |", "|---|---|---|---|---|"]
    for init in initiatives:
        rows.append(
            f"| {init['formattedMonth']} | **{init['title']}**<br>{init['description']} "
            f"| {init['owner']} | {init['kpi']} | {init['target']} |"
        )
    return "\n".join(rows)


def _format_extras(display: dict) -> str:
    sections = [
        ("⚠️ Risiko", display.get("risks")),
        ("📌 Asumsi", display.get("assumptions")),
        ("🔍 Data yang kurang", display.get("dataGaps")),
    ]
    parts = []
    for title, items in sections:
        if items:
            parts.append(f"**{title}**\n" + "\n".join(f"- {item}" for item in items))
    return "\n\n".join(parts)
