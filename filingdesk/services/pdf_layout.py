"""
PDF receipt layout.

Lays out a ReceiptModel as a paginated PDF with ReportLab. Item rows flow
onto continuation pages; no row is ever dropped. Long descriptions wrap
inside their cell and are cut short, with a marker, only when a single row
would not fit on a page of its own.
"""
from io import BytesIO
from typing import List, Optional, Tuple

import structlog
from reportlab.graphics import renderPDF
from reportlab.lib.pagesizes import A4, letter
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from filingdesk.services.payment_link import PaymentLinkGenerator
from filingdesk.services.receipt_renderer import ReceiptLine, ReceiptModel
from filingdesk.services.transports import DocumentRenderer

logger = structlog.get_logger(__name__)

PAGE_SIZES = {"A4": A4, "LETTER": letter}

MARGIN = 50
FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
FONT_SIZE = 10
LINE_HEIGHT = 12
ROW_PADDING = 6
CELL_PADDING = 5
TABLE_HEADER_HEIGHT = 20
HEADER_BOX_HEIGHT = 96

# Distance from the top margin to the first item row
FIRST_PAGE_OFFSET = 176
CONTINUATION_OFFSET = 50

# Replaces the last line of a description too long for one page
TRUNCATION_MARKER = "[description truncated]"

COLUMNS = (
    ("Description", 235, "left"),
    ("Quantity", 70, "right"),
    ("Price", 90, "right"),
    ("Subtotal", 100, "right"),
)

PRIMARY = (26 / 255, 115 / 255, 232 / 255)
HEADER_FILL = (244 / 255, 247 / 255, 1)
TABLE_HEADER_FILL = (227 / 255, 234 / 255, 1)
TOTAL_FILL = (208 / 255, 221 / 255, 1)


class PdfReceiptLayout(DocumentRenderer):
    """
    Document renderer for receipts.

    Attributes:
        page_size: (width, height) in points
        payment_links: Optional generator for the payment QR code
        compress: Whether page content streams are compressed
    """

    def __init__(
        self,
        page_size: str = "A4",
        payment_links: Optional[PaymentLinkGenerator] = None,
        compress: bool = True,
    ):
        self.page_size = PAGE_SIZES.get(page_size.upper(), A4)
        self.payment_links = payment_links
        self.compress = compress

    # ==================== Pagination ====================

    @property
    def max_description_lines(self) -> int:
        """Most description lines a row may use and still fit an empty continuation page."""
        usable = self.page_size[1] - 2 * MARGIN - CONTINUATION_OFFSET - ROW_PADDING
        return int(usable // LINE_HEIGHT)

    def _wrap(self, text: str) -> List[str]:
        width = COLUMNS[0][1] - 2 * CELL_PADDING
        lines = simpleSplit(text, FONT, FONT_SIZE, width) or [""]
        limit = self.max_description_lines
        if len(lines) > limit:
            lines = lines[:limit - 1] + [TRUNCATION_MARKER]
        return lines

    def _row_height(self, line: ReceiptLine) -> float:
        return len(self._wrap(line.description)) * LINE_HEIGHT + ROW_PADDING

    def _payment_uri(self, receipt: ReceiptModel) -> Optional[str]:
        if self.payment_links is None:
            return None
        return self.payment_links.build_uri(receipt)

    def _footer_height(self, receipt: ReceiptModel) -> float:
        height = TABLE_HEADER_HEIGHT + 24
        if not receipt.declared_value_matches_total:
            height += 16
        if self._payment_uri(receipt):
            height += self.payment_links.size + 10
        return height

    def paginate(self, receipt: ReceiptModel) -> List[List[ReceiptLine]]:
        """
        Split the receipt's rows into pages.

        The first entry is empty when the first row is too tall for the space
        under the header. The last entry may be an empty list when the totals
        footer does not fit below the final row and needs a page of its own.
        """
        _, page_height = self.page_size
        pages: List[List[ReceiptLine]] = [[]]
        available = page_height - MARGIN - FIRST_PAGE_OFFSET - MARGIN
        for line in receipt.lines:
            row_height = self._row_height(line)
            # Wrapping caps every row at the height of an empty continuation page
            if row_height > available and (pages[-1] or len(pages) == 1):
                pages.append([])
                available = page_height - MARGIN - CONTINUATION_OFFSET - MARGIN
            pages[-1].append(line)
            available -= row_height
        if available < self._footer_height(receipt):
            pages.append([])
        return pages

    # ==================== Drawing ====================

    def layout(self, receipt: ReceiptModel) -> bytes:
        """Render the receipt to PDF bytes."""
        pages = self.paginate(receipt)
        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=self.page_size, pageCompression=1 if self.compress else 0)
        c.setTitle(f"Customs Filing Receipt {receipt.shipment_id}")
        c.setAuthor("FilingDesk")

        total_pages = len(pages)
        for number, rows in enumerate(pages, start=1):
            if number == 1:
                y = self._draw_header(c, receipt)
            else:
                y = self._draw_continuation_title(c, receipt)
            if rows:
                y = self._draw_table_header(c, y, receipt.currency)
                for line in rows:
                    y = self._draw_row(c, y, line)
            if number == total_pages:
                self._draw_footer(c, y, receipt)
            self._draw_page_number(c, number, total_pages)
            c.showPage()
        c.save()

        logger.info(
            "receipt_pdf_rendered",
            filing_id=receipt.filing_id,
            item_count=receipt.item_count,
            pages=total_pages,
        )
        return buffer.getvalue()

    def _content_width(self) -> float:
        return self.page_size[0] - 2 * MARGIN

    def _draw_header(self, c: canvas.Canvas, receipt: ReceiptModel) -> float:
        page_width, page_height = self.page_size
        top = page_height - MARGIN

        c.setFont(FONT_BOLD, 20)
        c.setFillColorRGB(*PRIMARY)
        c.drawCentredString(page_width / 2, top - 10, "CUSTOMS FILING RECEIPT")
        c.setStrokeColorRGB(*PRIMARY)
        c.setLineWidth(0.5)
        c.line(MARGIN, top - 20, page_width - MARGIN, top - 20)

        box_top = top - 30
        c.setFillColorRGB(*HEADER_FILL)
        c.rect(MARGIN, box_top - HEADER_BOX_HEIGHT, self._content_width(), HEADER_BOX_HEIGHT, fill=1, stroke=0)
        c.setFillColorRGB(0, 0, 0)
        c.setFont(FONT, 11)
        for index, (label, value) in enumerate(receipt.header_fields()):
            c.drawString(MARGIN + 10, box_top - 20 - index * 16, f"{label}: {value}")

        c.setFont(FONT_BOLD, 13)
        c.setFillColorRGB(*PRIMARY)
        c.drawString(MARGIN, top - 146, f"Items Details ({receipt.currency})")
        return top - 156

    def _draw_continuation_title(self, c: canvas.Canvas, receipt: ReceiptModel) -> float:
        top = self.page_size[1] - MARGIN
        c.setFont(FONT_BOLD, 12)
        c.setFillColorRGB(*PRIMARY)
        c.drawString(MARGIN, top - 10, f"Customs Filing Receipt {receipt.shipment_id} (continued)")
        return top - 30

    def _column_edges(self) -> List[Tuple[float, float]]:
        edges = []
        x = MARGIN
        for _, width, _ in COLUMNS:
            edges.append((x, x + width))
            x += width
        return edges

    def _draw_cell(self, c: canvas.Canvas, text: str, edge: Tuple[float, float], align: str, y: float) -> None:
        left, right = edge
        if align == "right":
            c.drawRightString(right - CELL_PADDING, y, text)
        else:
            c.drawString(left + CELL_PADDING, y, text)

    def _draw_table_header(self, c: canvas.Canvas, y: float, currency: str) -> float:
        c.setFillColorRGB(*TABLE_HEADER_FILL)
        c.rect(MARGIN, y - TABLE_HEADER_HEIGHT, self._content_width(), TABLE_HEADER_HEIGHT, fill=1, stroke=0)
        c.setFillColorRGB(*PRIMARY)
        c.setFont(FONT_BOLD, FONT_SIZE)
        for (title, _, align), edge in zip(COLUMNS, self._column_edges()):
            self._draw_cell(c, title, edge, align, y - 14)
        return y - TABLE_HEADER_HEIGHT

    def _draw_row(self, c: canvas.Canvas, y: float, line: ReceiptLine) -> float:
        c.setFillColorRGB(0, 0, 0)
        c.setFont(FONT, FONT_SIZE)
        edges = self._column_edges()
        wrapped = self._wrap(line.description)
        for index, text in enumerate(wrapped):
            self._draw_cell(c, text, edges[0], "left", y - LINE_HEIGHT * (index + 1))
        baseline = y - LINE_HEIGHT
        self._draw_cell(c, str(line.quantity), edges[1], "right", baseline)
        self._draw_cell(c, line.formatted_unit_price, edges[2], "right", baseline)
        self._draw_cell(c, line.formatted_subtotal, edges[3], "right", baseline)
        return y - (len(wrapped) * LINE_HEIGHT + ROW_PADDING)

    def _draw_footer(self, c: canvas.Canvas, y: float, receipt: ReceiptModel) -> None:
        c.setFillColorRGB(*TOTAL_FILL)
        c.rect(MARGIN, y - TABLE_HEADER_HEIGHT, self._content_width(), TABLE_HEADER_HEIGHT, fill=1, stroke=0)
        c.setFillColorRGB(*PRIMARY)
        c.setFont(FONT_BOLD, 11)
        c.drawRightString(
            MARGIN + self._content_width() - CELL_PADDING,
            y - 14,
            f"Total: {receipt.formatted_grand_total}",
        )
        y -= TABLE_HEADER_HEIGHT + 18

        c.setFillColorRGB(0, 0, 0)
        c.drawString(MARGIN, y, f"Declared Value: {receipt.currency} {receipt.formatted_declared_value}")
        if not receipt.declared_value_matches_total:
            y -= 16
            c.setFont(FONT, FONT_SIZE)
            c.drawString(
                MARGIN,
                y,
                f"Declared value differs from the items total by {receipt.formatted_value_difference}",
            )

        payment_uri = self._payment_uri(receipt)
        if payment_uri:
            drawing = self.payment_links.drawing(payment_uri)
            renderPDF.draw(drawing, c, MARGIN, y - 10 - self.payment_links.size)

    def _draw_page_number(self, c: canvas.Canvas, number: int, total: int) -> None:
        c.setFillColorRGB(0.4, 0.4, 0.4)
        c.setFont(FONT, 8)
        c.drawRightString(self.page_size[0] - MARGIN, MARGIN / 2, f"Page {number} of {total}")
