from .payslip_render import (
    build_payslip_view,
    build_pdf_filename,
    format_amount,
    render_payslip_html,
    render_payslip_pdf,
)

__all__ = [
    "build_payslip_view",
    "build_pdf_filename",
    "format_amount",
    "render_payslip_html",
    "render_payslip_pdf",
]
