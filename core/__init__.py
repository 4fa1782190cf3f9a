"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- 狀態機：集中管理講者狀態轉換
- Manager：管理 Space 與排隊的生命週期
- Session Recorder：記錄啟用區間與計數
- Entry Store：排隊紀錄的存取介面
- Locks：並發控制工具
"""
