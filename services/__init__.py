"""
服務層

這個 package 包含純計算與查詢邏輯，不負責狀態轉換：
- position_service：position 計算、重新編號、上下移動
- history_service：排隊中的 Space 與啟用紀錄
- naming_service：slug 生成
- clock：UTC 時間工具
"""
