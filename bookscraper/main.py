"""
Book page scraper - FastAPI Application
HTTP surface for single-page book metadata extraction.
"""
from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse

from bookscraper import __version__
from bookscraper.adapters.html_scraper import BookFetchError, BookPageScraper
from bookscraper.config import config
from bookscraper.utils.logger import get_logger, set_trace_id
from bookscraper.utils.validation import is_book_url


# Initialize FastAPI app
app = FastAPI(
    title="Book Page Scraper",
    description="Extracts structured book metadata from a single book-detail page",
    version=__version__,
)

scraper = BookPageScraper()

logger = get_logger("main")


# API Routes
@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/api/book")
async def scrape_book_page(url: str = Query(..., description="Book page URL to scrape")):
    """
    Scrape one book-detail page.

    Returns the book record with camelCase keys. Upstream fetch
    failures are reported as 502 with the upstream status code.
    """
    trace_id = set_trace_id()

    logger.info("book_request", url=url, trace_id=trace_id)

    if not is_book_url(url):
        raise HTTPException(
            status_code=400,
            detail="Invalid book URL. Expected https://<host>/book/show/<id>",
        )

    try:
        record = await scraper.fetch_and_parse(url)
    except BookFetchError as e:
        logger.error("book_fetch_error", url=url, status_code=e.status_code, error=e.message)
        raise HTTPException(
            status_code=502,
            detail={"error": e.message, "upstream_status": e.status_code},
        )
    except Exception as e:
        logger.error("book_scrape_error", error=str(e), url=url)
        raise HTTPException(status_code=500, detail=str(e))

    return JSONResponse(content=record.to_dict(), headers={"X-Trace-Id": trace_id})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=config.HOST,
        port=config.PORT,
        log_level="debug" if config.DEBUG else "info",
    )
