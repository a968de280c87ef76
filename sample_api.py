from typing import Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Response
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

app = FastAPI(
    title="Books API",
    description="A small books API to try the OpenAPI to MCP bridge against",
    version="1.0.0",
    servers=[{"url": "http://127.0.0.1:8000"}],
)


class Book(BaseModel):
    title: str
    author: str
    isbn: Optional[str] = None
    year: Optional[int] = None


class BookResponse(Book):
    id: int


# In-memory storage
books: Dict[int, Book] = {}
next_id = 1


def _init_sample_books():
    global next_id
    samples = [
        {"title": "The Great Gatsby", "author": "F. Scott Fitzgerald", "isbn": "978-0-7432-7356-5", "year": 1925},
        {"title": "To Kill a Mockingbird", "author": "Harper Lee", "isbn": "978-0-06-112008-4", "year": 1960},
        {"title": "1984", "author": "George Orwell", "isbn": "978-0-452-28423-4", "year": 1949},
    ]
    for book_data in samples:
        books[next_id] = Book(**book_data)
        next_id += 1


_init_sample_books()


@app.get("/health", response_class=PlainTextResponse, operation_id="health")
def health():
    """Plain-text liveness probe"""
    return "ok"


@app.get("/books", response_model=List[BookResponse], operation_id="listBooks")
def list_books(limit: Optional[int] = None, author: Optional[str] = None):
    """List books, optionally filtered by author"""
    result = [
        BookResponse(id=book_id, **book.model_dump())
        for book_id, book in books.items()
        if author is None or author.lower() in book.author.lower()
    ]
    return result[:limit] if limit is not None else result


@app.get("/books/{book_id}", response_model=BookResponse, operation_id="getBook")
def get_book(book_id: int):
    """Get a specific book by ID"""
    if book_id not in books:
        raise HTTPException(status_code=404, detail=f"Book with ID {book_id} not found")
    return BookResponse(id=book_id, **books[book_id].model_dump())


@app.post("/books", response_model=BookResponse, status_code=201, operation_id="createBook")
def create_book(book: Book):
    """Create a new book"""
    global next_id
    book_id = next_id
    books[book_id] = book
    next_id += 1
    return BookResponse(id=book_id, **book.model_dump())


@app.put("/books/{book_id}", response_model=BookResponse, operation_id="updateBook")
def update_book(book_id: int, book: Book):
    """Replace an existing book"""
    if book_id not in books:
        raise HTTPException(status_code=404, detail=f"Book with ID {book_id} not found")
    books[book_id] = book
    return BookResponse(id=book_id, **book.model_dump())


@app.delete("/books/{book_id}", status_code=204, operation_id="deleteBook")
def delete_book(book_id: int):
    """Delete a book by ID"""
    if book_id not in books:
        raise HTTPException(status_code=404, detail=f"Book with ID {book_id} not found")
    del books[book_id]
    return Response(status_code=204)


if __name__ == "__main__":
    print("Starting Books API server...")
    print("OpenAPI document available at: http://127.0.0.1:8000/openapi.json")
    uvicorn.run("sample_api:app", host="127.0.0.1", port=8000, reload=True)
