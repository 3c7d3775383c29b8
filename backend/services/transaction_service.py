from fastapi import HTTPException
from models.transaction_model import Transaction, TransactionItem


async def get_user_transactions(user_id: str, db):
    try:
        select_query = "SELECT * FROM bills WHERE user_id = $1 AND is_successful = true ORDER BY created_at DESC"
        bills = await db.fetch(select_query, user_id)
        if not bills:
            return []
        select_query = """
            SELECT e.bill_id, c.id AS course_id, c.title, c.thumbnail_url, c.price
            FROM enrollments e
            JOIN courses c ON e.course_id = c.id
            WHERE e.bill_id = ANY($1::text[])
            ORDER BY c.title
        """
        rows = await db.fetch(select_query, [bill["id"] for bill in bills])
        items_by_bill = {}
        for row in rows:
            items_by_bill.setdefault(row["bill_id"], []).append(
                TransactionItem(
                    course_id=row["course_id"],
                    title=row["title"],
                    thumbnail=row["thumbnail_url"],
                    price=row["price"],
                )
            )
        return [
            Transaction(
                id=bill["id"],
                transaction_id=bill["transaction_id"],
                date=bill["created_at"],
                amount=bill["amount"],
                original_amount=bill["original_amount"],
                discount_amount=bill["discount_amount"],
                status="Successful" if bill["is_successful"] else "Failed",
                gateway=bill["gateway"],
                items=items_by_bill.get(bill["id"], []),
            )
            for bill in bills
        ]
    except Exception as e:
        print(f"Error fetching transactions: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch transaction history")
