"""PDF progress report exporter using Jinja2 HTML rendering.

Generates print-ready HTML (stored as .html). Byte-level PDF conversion
happens downstream (headless Chrome or wkhtmltopdf).
"""

from jinja2 import Template

from app.modules.progress_reports.assembly import ProgressReport
from app.modules.progress_reports.generators.base import BaseProgressExporter

HTML_TEMPLATE = Template("""\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>{{ title }}</title>
  <style>
    @page { size: landscape; margin: 16mm; }
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; color: #1a1a1a; padding: 40px; }
    .header { background: {{ brand_color }}; color: #fff; padding: 32px; margin: -40px -40px 32px; }
    .header h1 { font-size: 26px; margin-bottom: 8px; }
    .header .meta { font-size: 14px; opacity: 0.85; }
    table { width: 100%; border-collapse: collapse; margin-bottom: 16px; }
    th { background: {{ brand_color }}; color: #fff; padding: 10px 12px; text-align: right; font-size: 13px; }
    th:first-child, td:first-child { text-align: left; }
    td { padding: 8px 12px; border-bottom: 1px solid #e5e5e5; font-size: 13px; text-align: right; }
    tr:nth-child(even) { background: #f9f9f9; }
    tr.grand-total td { font-weight: 700; background: #eef2f7; border-top: 2px solid {{ brand_color }}; }
    .empty { font-size: 14px; color: #555; margin-bottom: 16px; }
    .note { font-size: 12px; color: #8a5a00; margin-bottom: 16px; }
    .footer { margin-top: 48px; padding-top: 16px; border-top: 1px solid #ddd; font-size: 12px; color: #888; text-align: center; }
  </style>
</head>
<body>
  <div class="header">
    <h1>{{ title }}</h1>
    <div class="meta">{{ project_name }} &bull; Grouped by {{ dimension_label }} &bull; Generated {{ generated_at }}</div>
  </div>

  {% if is_empty %}
  <div class="empty">No data: this project has no active components to report.</div>
  {% endif %}
  {% if skipped_count %}
  <div class="note">{{ skipped_count }} component(s) with invalid milestone data were excluded.</div>
  {% endif %}

  <table>
    <thead><tr>{% for h in headers %}<th>{{ h }}</th>{% endfor %}</tr></thead>
    <tbody>
      {% for row in rows %}
      <tr>{% for cell in row %}<td>{{ cell }}</td>{% endfor %}</tr>
      {% endfor %}
      <tr class="grand-total">{% for cell in grand_total %}<td>{{ cell }}</td>{% endfor %}</tr>
    </tbody>
  </table>

  <div class="footer">
    {{ prefix }} &bull; {{ generated_at }}
  </div>
</body>
</html>
""", autoescape=True)


class PDFExporter(BaseProgressExporter):
    """Generate HTML report (PDF conversion deferred to the print step)."""

    CONTENT_TYPE = "text/html"
    EXTENSION = "html"

    brand_color = "#1E3A5F"

    def generate(self, report: ProgressReport) -> tuple[bytes, str]:
        headers, rows, grand_total = self._table(report)
        html = HTML_TEMPLATE.render(
            title=report.title,
            project_name=report.project_name,
            dimension_label=report.dimension_label,
            generated_at=self._format_generated_at(report),
            brand_color=self.brand_color,
            prefix=self.filename_prefix,
            headers=headers,
            rows=rows,
            grand_total=grand_total,
            is_empty=report.is_empty,
            skipped_count=report.skipped_count,
        )
        return html.encode("utf-8"), self.CONTENT_TYPE
