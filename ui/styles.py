"""
CSS styles for the UMKM Strategi UI.

Light theme with a green accent; quick-win cards are colored by priority.
"""

CUSTOM_CSS = """
/* === Variables === */
:root {
    --accent: #059669;
    --accent-hover: #047857;
    --high: #dc2626;
    --medium: #d97706;
    --low: #64748b;
    --bg-page: #f8fafc;
    --bg-panel: #ffffff;
    --bg-muted: #f1f5f9;
    --text-main: #0f172a;
    --text-muted: #64748b;
    --border: #e2e8f0;
    --radius: 10px;
}

/* === Container === */
.gradio-container {
    background: var(--bg-page) !important;
    font-family: 'Inter', -apple-system, BlinkMacSystemFont, sans-serif !important;
}

h1, h2, h3 {
    color: var(--text-main) !important;
    font-weight: 600 !important;
}

h1 {
    font-size: 2rem !important;
    color: var(--accent) !important;
}

/* === Quick wins by priority === */
.priority-high,
.priority-medium,
.priority-low {
    background: var(--bg-panel) !important;
    border: 1px solid var(--border) !important;
    border-radius: var(--radius) !important;
    padding: 16px 20px !important;
    margin: 12px 0 !important;
}

.priority-high { border-left: 4px solid var(--high) !important; }
.priority-medium { border-left: 4px solid var(--medium) !important; }
.priority-low { border-left: 4px solid var(--low) !important; }

/* === Source badge === */
.source-badge {
    display: inline-block;
    border-radius: 999px;
    padding: 2px 12px;
    font-size: 0.8rem;
    font-weight: 600;
    color: white;
}

.badge-ai { background: #7c3aed; }
.badge-local { background: var(--low); }
.badge-cache { background: #0284c7; }

/* === Buttons === */
.primary-btn {
    background: var(--accent) !important;
    border: none !important;
    border-radius: var(--radius) !important;
    color: white !important;
    font-weight: 600 !important;
    padding: 12px 32px !important;
}

.primary-btn:hover {
    background: var(--accent-hover) !important;
}

.secondary-btn {
    border: 1px solid var(--accent) !important;
    border-radius: var(--radius) !important;
    color: var(--accent) !important;
}

/* === File upload === */
.file-upload {
    background: var(--bg-muted) !important;
    border: 2px dashed var(--border) !important;
    border-radius: var(--radius) !important;
}

.file-upload:hover {
    border-color: var(--accent) !important;
}

/* === Import summary and extras === */
.import-box {
    color: var(--text-main) !important;
}

.warnings-box {
    background: rgba(217, 119, 6, 0.08) !important;
    border: 1px solid var(--medium) !important;
    border-radius: var(--radius) !important;
    padding: 16px 20px !important;
    margin: 16px 0 !important;
}

.hint-text {
    color: var(--text-muted) !important;
    font-size: 0.875rem !important;
    font-style: italic !important;
}

/* === Results === */
.results-section {
    background: var(--bg-panel) !important;
    border: 1px solid var(--border) !important;
    border-radius: var(--radius) !important;
    padding: 24px !important;
    margin-top: 24px !important;
}

/* === Initiatives table === */
th {
    background: var(--bg-muted) !important;
    color: var(--text-muted) !important;
    font-size: 0.75rem !important;
    text-transform: uppercase !important;
}

td {
    color: var(--text-main) !important;
    border-color: var(--border) !important;
    vertical-align: top !important;
}
"""
