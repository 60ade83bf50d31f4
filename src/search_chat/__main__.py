from search_chat.app import main

main()
