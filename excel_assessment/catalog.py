"""Fixed assessment content: questions, spreadsheet tasks and sample data."""

from excel_assessment.models import Question, SpreadsheetTask


QUESTIONS = (
    Question(
        id=1,
        prompt="In your own words, what is the primary purpose of VLOOKUP in Excel?",
        expected="Looks up a value in the first column of a range and returns a value from another column in the same row.",
    ),
    Question(
        id=2,
        prompt=(
            "You have a dataset where column A contains Product IDs and column B contains "
            "Product Names. On another sheet, you have a Product ID in cell C2. Write the "
            "VLOOKUP formula to find the corresponding Product Name."
        ),
        expected="=VLOOKUP(C2,Sheet1!A:B,2,FALSE)",
    ),
    Question(
        id=3,
        prompt=(
            "What is the difference between VLOOKUP's TRUE and FALSE arguments for the "
            "[range_lookup] parameter? When would you use TRUE?"
        ),
        expected="FALSE is an exact match; TRUE is an approximate match on sorted data, e.g. tiered rates.",
    ),
    Question(
        id=4,
        prompt="VLOOKUP returns an #N/A error. List three common reasons why this might be happening.",
        expected="Value missing, extra spaces or mismatched data types, lookup column not first in range.",
    ),
    Question(
        id=5,
        prompt="What are the main advantages of using INDEX and MATCH together over VLOOKUP?",
        expected="Looks left, survives column insertion, faster on large ranges, no hard-coded column index.",
    ),
)


TASKS = (
    SpreadsheetTask(
        id=1,
        title="Basic VLOOKUP",
        prompt="In cell F2, create a VLOOKUP formula to find the price of the product ID entered in cell E2.",
        expected="=VLOOKUP(E2,A:B,2,FALSE)",
        difficulty="Easy",
        time_limit=180,
    ),
    SpreadsheetTask(
        id=2,
        title="Data Validation & Formatting",
        prompt=(
            "Apply currency formatting to column B (Price) and create a data validation "
            "dropdown in E2 with the product IDs from column A."
        ),
        expected="formatted_currency",
        difficulty="Medium",
        time_limit=300,
    ),
    SpreadsheetTask(
        id=3,
        title="INDEX MATCH Alternative",
        prompt=(
            "In cell F3, create an INDEX/MATCH formula that does the same lookup as the "
            "VLOOKUP in F2, but can search in any direction."
        ),
        expected="=INDEX(B:B,MATCH(E2,A:A,0))",
        difficulty="Medium",
        time_limit=240,
    ),
    SpreadsheetTask(
        id=4,
        title="Error Handling",
        prompt=(
            "Modify your VLOOKUP formula in F2 to display 'Product Not Found' instead of "
            "#N/A when the lookup fails."
        ),
        expected='=IFERROR(VLOOKUP(E2,A:B,2,FALSE),"Product Not Found")',
        difficulty="Hard",
        time_limit=300,
    ),
    SpreadsheetTask(
        id=5,
        title="Advanced Analysis",
        prompt=(
            "Create a summary in cells H1:I3 showing: Total Products, Average Price, "
            "and Most Expensive Product Name."
        ),
        expected="multiple_formulas",
        difficulty="Hard",
        time_limit=420,
    ),
)


SAMPLE_DATA = (
    ("Product ID", "Product Name", "Price", "Category"),
    ("P001", "Laptop Pro", "1299.99", "Electronics"),
    ("P002", "Wireless Mouse", "29.99", "Electronics"),
    ("P003", "Office Chair", "249.50", "Furniture"),
    ("P004", "Desk Lamp", "89.99", "Furniture"),
    ("P005", "Notebook Set", "15.99", "Stationery"),
    ("P006", "Pen Collection", "24.99", "Stationery"),
    ("P007", "Monitor 4K", "599.99", "Electronics"),
    ("P008", "Keyboard Pro", "149.99", "Electronics"),
)


def sample_grid() -> list[list[str]]:
    """Return a fresh, mutable copy of the sample product table."""
    return [list(row) for row in SAMPLE_DATA]
