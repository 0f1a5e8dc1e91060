"""VetBot — поиск ветеринарных врачей в Telegram."""
