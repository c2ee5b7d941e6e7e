"""Contact domain - rate-limited, CAPTCHA-protected contact form"""
