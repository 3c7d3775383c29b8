import resend
import os
from html import escape
from dotenv import load_dotenv

load_dotenv()
resend.api_key = os.getenv("RESEND_API_KEY")

MAIL_FROM = os.getenv("MAIL_FROM", "Fly Up EduTech <noreply@flyup.edu.vn>")
CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:5173")


def format_vnd(amount):
    return f"{int(amount):,}".replace(",", ".") + "₫"


def send_purchase_success_email(job_data: dict):
    try:
        order_data = job_data["order_data"]
        name = job_data.get("full_name") or "there"
        course_rows = "".join(
            f"""
    <div style="padding: 12px; background: #f8f9fa; border-radius: 8px; margin-bottom: 8px; border: 1px solid #eaeaea;">
      <div style="font-weight: 600; color: #333;">{escape(course["title"])}</div>
      <div style="font-size: 13px; color: #888;">{format_vnd(course["price"])}</div>
    </div>"""
            for course in order_data["courses"]
        )
        discount_row = ""
        if order_data.get("discount_amount"):
            coupon_label = f" ({escape(order_data['coupon_code'])})" if order_data.get("coupon_code") else ""
            discount_row = f"""
          <div style="display: flex; justify-content: space-between; padding-top: 10px;">
            <div style="color: #888;">Discount{coupon_label}</div>
            <div style="color: #27ae60;">-{format_vnd(order_data["discount_amount"])}</div>
          </div>"""
        html_content = f"""
<div style="font-family: 'Segoe UI', Arial, sans-serif; background-color: #f4f7fa; padding: 20px;">
  <div style="max-width: 600px; margin: 40px auto; background: #ffffff; border-radius: 16px; overflow: hidden;">
    <div style="background: linear-gradient(135deg, #00C6FF 0%, #0072FF 100%); padding: 40px 20px; text-align: center;">
      <h1 style="color: white; font-size: 28px; font-weight: 700; margin: 0;">Payment Successful!</h1>
    </div>
    <div style="padding: 40px 30px; color: #444; line-height: 1.6;">
      <p>Hi {escape(name)},</p>
      <p>Thank you for your purchase! Your payment has been processed and you now have full access to the following courses.</p>
      <div style="font-size: 14px; color: #888; text-transform: uppercase; margin-bottom: 12px; font-weight: 700;">Order Details</div>
      <div style="background-color: #fcfcfc; border: 1px solid #eee; border-radius: 12px; padding: 20px;">
        <div style="margin-bottom: 15px; border-bottom: 1px solid #eee; padding-bottom: 15px;">
          <div style="font-size: 13px; color: #888;">Order ID</div>
          <div style="font-weight: 600; font-family: monospace;">{escape(order_data["order_id"])}</div>
        </div>
        {course_rows}
        {discount_row}
        <div style="display: flex; justify-content: space-between; padding-top: 15px; border-top: 2px solid #0072FF;">
          <div style="font-weight: 700;">Total</div>
          <div style="font-weight: 700; color: #0072FF; font-size: 20px;">{format_vnd(order_data["total_amount"])}</div>
        </div>
      </div>
      <div style="text-align: center; margin: 35px 0;">
        <a href="{CLIENT_URL}/my-learning" style="display: inline-block; background: #0072FF; color: white; text-decoration: none; padding: 14px 40px; border-radius: 50px; font-weight: 600;">Go to My Learning</a>
      </div>
      <p style="font-size: 13px; color: #888;">If you have any questions about your order, please contact our support team.</p>
    </div>
  </div>
</div>
        """
        params = {
            "from": MAIL_FROM,
            "to": [job_data["email"]],
            "subject": "Fly Up - Payment successful, your courses are ready",
            "html": html_content,
        }
        result = resend.Emails.send(params)
        if result and "id" in result:
            print(f"Purchase email sent for order {order_data['order_id']}, email id: {result['id']}")
            return {"success": True, "email_id": result["id"]}
        else:
            print(f"Purchase email for order {order_data['order_id']} got an invalid response")
            return {"success": False, "error": "Invalid response format"}
    except Exception as e:
        print(f"Unexpected error sending purchase email: {e}")
        return {"success": False, "error": f"Unexpected error: {e}"}
