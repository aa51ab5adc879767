from whatsterm.main import main

main()
